"""Catalog value objects: identifiers, enums and transition records."""

from datetime import datetime, timedelta
from enum import IntEnum, StrEnum
from typing import NewType
from uuid import UUID

from wsi.domain.shared.model.value import ValueObject

UrlItemId = NewType("UrlItemId", UUID)
ServiceAccountId = NewType("ServiceAccountId", UUID)


class UrlItemType(StrEnum):
    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"


class UrlItemPriority(IntEnum):
    """Higher values are served first."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


class UrlItemStatus(StrEnum):
    PENDING = "pending"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED_VERIFICATION = "failed_verification"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    INSPECTING = "inspecting"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED_PERMANENT = "failed_permanent"


class FailureCategory(StrEnum):
    TRANSIENT = "transient"  # network, timeout, 5xx
    RATE_LIMITED = "rate_limited"  # 429, upstream quota rejection
    PERMANENT = "permanent"  # other 4xx, malformed URL, policy violation


class TransitionRecord(ValueObject):
    """One entry in a URL's lifecycle history."""

    from_status: UrlItemStatus
    to_status: UrlItemStatus
    at: datetime
    reason: str | None = None
    category: FailureCategory | None = None
    retry_delay: timedelta | None = None
