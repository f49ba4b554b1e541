from datetime import datetime

from pydantic import Field

from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.shared.error import ValidationError
from wsi.domain.shared.model.aggregate import Aggregate


class ServiceAccount(Aggregate):
    """An indexing credential with a daily quota budget.

    ``quota_used_in_period`` is only changed by the quota ledger; it belongs to
    the period that started at ``quota_period_start``. A limit lowered below
    today's usage leaves the usage as it is, with nothing remaining.
    """

    id: ServiceAccountId
    project_id: str
    credential_ref: str = Field(repr=False)
    quota_limit_per_day: int = Field(ge=0)
    quota_used_in_period: int = Field(default=0, ge=0)
    quota_period_start: datetime | None = None
    created_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def remaining_quota(self) -> int:
        return max(self.quota_limit_per_day - self.quota_used_in_period, 0)

    def update_quota(self, limit: int) -> None:
        if limit < 0:
            raise ValidationError("quota must not be negative", field="quota_limit_per_day")
        self.quota_limit_per_day = limit

    def mark_deleted(self, now: datetime) -> None:
        if self.is_deleted:
            return
        self.deleted_at = now
