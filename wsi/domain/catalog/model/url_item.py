from datetime import datetime, timedelta

from pydantic import Field

from wsi.domain.catalog.model.lifecycle import is_terminal, require_transition
from wsi.domain.catalog.model.value import (
    FailureCategory,
    ServiceAccountId,
    TransitionRecord,
    UrlItemId,
    UrlItemPriority,
    UrlItemStatus,
    UrlItemType,
)
from wsi.domain.shared.error import InvalidStateError, ValidationError
from wsi.domain.shared.model.aggregate import Aggregate

S = UrlItemStatus


class UrlItem(Aggregate):
    """A unit of indexing work.

    All status changes go through ``_transition`` so the lifecycle graph is
    enforced and every change lands in ``history``. ``attempt_count`` only
    grows, and only when inspection schedules a retry.
    """

    id: UrlItemId
    url: str
    type: UrlItemType = UrlItemType.UPDATED
    priority: UrlItemPriority = UrlItemPriority.MEDIUM
    status: UrlItemStatus = UrlItemStatus.PENDING
    service_account_id: ServiceAccountId | None = None
    attempt_count: int = Field(default=0, ge=0)
    last_error: str | None = None
    last_status_code: int | None = None
    failure_category: FailureCategory | None = None
    submit_failed: bool = False
    verification_attempts: int = 0
    retry_not_before: datetime | None = None
    created_at: datetime
    last_transition_at: datetime
    history: list[TransitionRecord] = []

    @classmethod
    def create(
        cls,
        id: UrlItemId,
        url: str,
        now: datetime,
        type: UrlItemType = UrlItemType.UPDATED,
        priority: UrlItemPriority = UrlItemPriority.MEDIUM,
    ) -> "UrlItem":
        url = url.strip()
        if not url:
            raise ValidationError("URL must not be empty", field="url")
        return cls(
            id=id,
            url=url,
            type=type,
            priority=priority,
            created_at=now,
            last_transition_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def _transition(
        self,
        target: UrlItemStatus,
        now: datetime,
        reason: str | None = None,
        category: FailureCategory | None = None,
        retry_delay: timedelta | None = None,
    ) -> None:
        require_transition(self.status, target)
        self.history.append(
            TransitionRecord(
                from_status=self.status,
                to_status=target,
                at=now,
                reason=reason,
                category=category,
                retry_delay=retry_delay,
            )
        )
        self.status = target
        self.last_transition_at = now

    # --- Crawler -------------------------------------------------------------

    def claim_for_verification(self, now: datetime) -> None:
        self._transition(S.VERIFYING, now)

    def mark_verified(self, now: datetime, attempts: int) -> None:
        self.verification_attempts = attempts
        self.last_error = None
        self._transition(S.VERIFIED, now)

    def mark_verification_failed(self, now: datetime, error: str, attempts: int) -> None:
        self.verification_attempts = attempts
        self.last_error = error
        self._transition(S.FAILED_VERIFICATION, now, reason=error)

    # --- Submission ----------------------------------------------------------

    def defer(self, now: datetime, reason: str) -> None:
        """Return to PENDING without touching the attempt count."""
        self._transition(S.PENDING, now, reason=reason)

    def start_submission(self, now: datetime) -> None:
        self.submit_failed = False
        self.last_status_code = None
        self._transition(S.SUBMITTING, now)

    def mark_submitted(
        self, now: datetime, account_id: ServiceAccountId, status_code: int | None = None
    ) -> None:
        self.service_account_id = account_id
        self.last_status_code = status_code
        self.last_error = None
        self._transition(S.SUBMITTED, now)

    def mark_submission_failed(
        self,
        now: datetime,
        error: str,
        status_code: int | None = None,
        category: FailureCategory | None = None,
    ) -> None:
        """Transport-level failure; inspection classifies it from the recorded details."""
        self.submit_failed = True
        self.failure_category = category
        self.last_error = error
        self.last_status_code = status_code
        self._transition(S.INSPECTING, now, reason=error)

    # --- Inspection ----------------------------------------------------------

    def begin_inspection(self, now: datetime) -> None:
        self._transition(S.INSPECTING, now)

    def complete(self, now: datetime, status_code: int | None = None) -> None:
        self.last_status_code = status_code
        self.last_error = None
        self.failure_category = None
        self.submit_failed = False
        self._transition(S.COMPLETED, now)

    def schedule_retry(
        self,
        now: datetime,
        delay: timedelta,
        category: FailureCategory,
        reason: str,
    ) -> None:
        self.attempt_count += 1
        self.failure_category = category
        self.retry_not_before = now + delay
        self.service_account_id = None
        self.submit_failed = False
        self._transition(S.RETRYING, now, reason=reason, category=category, retry_delay=delay)

    def fail_permanently(
        self, now: datetime, reason: str, category: FailureCategory | None = None
    ) -> None:
        self.failure_category = category
        self.submit_failed = False
        self._transition(S.FAILED_PERMANENT, now, reason=reason, category=category)

    # --- Re-entry ------------------------------------------------------------

    def is_retry_due(self, now: datetime) -> bool:
        return (
            self.status == S.RETRYING
            and self.retry_not_before is not None
            and now >= self.retry_not_before
        )

    def requeue(self, now: datetime) -> None:
        if not self.is_retry_due(now):
            raise InvalidStateError(
                f"URL {self.id} is not due for retry (status={self.status}, "
                f"retry_not_before={self.retry_not_before})"
            )
        self.retry_not_before = None
        self._transition(S.PENDING, now, reason="retry delay elapsed")
