from abc import abstractmethod
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import FailureCategory, UrlItemType
from wsi.domain.shared.model.value import ValueObject
from wsi.domain.shared.port import Port


class NotificationType(StrEnum):
    URL_UPDATED = "URL_UPDATED"
    URL_DELETED = "URL_DELETED"

    @classmethod
    def for_item_type(cls, item_type: UrlItemType) -> "NotificationType":
        if item_type == UrlItemType.DELETED:
            return cls.URL_DELETED
        return cls.URL_UPDATED


class SubmissionReceipt(ValueObject):
    """Transport-level result of a publish call.

    ``accepted`` only means the API took the notification; whether it was
    processed is learned later through an outcome query.
    """

    accepted: bool
    status_code: int | None = None
    error: str | None = None
    category: FailureCategory | None = None  # Set when the adapter already knows the class


class OutcomeReport(ValueObject):
    """Result of an outcome query for a previously published URL.

    ``processed`` is None when the response does not say either way.
    """

    processed: bool | None
    status_code: int | None = None
    error: str | None = None
    notify_time: datetime | None = None


class IndexingApiClient(Port, Protocol):
    @abstractmethod
    async def publish(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> SubmissionReceipt: ...

    @abstractmethod
    async def get_outcome(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> OutcomeReport: ...
