"""In-memory doubles for the domain ports."""

import asyncio
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import (
    ServiceAccountId,
    UrlItemId,
    UrlItemPriority,
    UrlItemStatus,
    UrlItemType,
)
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.crawl.port.reachability import ReachabilityChecker, ReachabilityResult
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.pipeline.port.stages import PipelineStages, StageFactory
from wsi.domain.shared.port.clock import Clock
from wsi.domain.submission.port.indexing_api import (
    IndexingApiClient,
    NotificationType,
    OutcomeReport,
    SubmissionReceipt,
)

# A Monday, well clear of any DST change in Europe or the US
NOON = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class FakeClock(Clock):
    def __init__(self, now: datetime = NOON) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


def make_url(
    url: str = "https://example.com/page",
    now: datetime = NOON,
    status: UrlItemStatus = UrlItemStatus.PENDING,
    priority: UrlItemPriority = UrlItemPriority.MEDIUM,
    type: UrlItemType = UrlItemType.UPDATED,
    **fields,
) -> UrlItem:
    """Build a UrlItem directly in ``status``, without history."""
    return UrlItem(
        id=UrlItemId(uuid4()),
        url=url,
        type=type,
        priority=priority,
        status=status,
        created_at=now,
        last_transition_at=now,
        **fields,
    )


def make_account(
    limit: int = 100,
    used: int = 0,
    period_start: datetime | None = None,
    created_at: datetime = NOON,
    project_id: str = "test-project",
    credential_ref: str = "/secrets/key.json",
    **fields,
) -> ServiceAccount:
    return ServiceAccount(
        id=ServiceAccountId(uuid4()),
        project_id=project_id,
        credential_ref=credential_ref,
        quota_limit_per_day=limit,
        quota_used_in_period=used,
        quota_period_start=period_start,
        created_at=created_at,
        **fields,
    )


class InMemoryUrlRepository(UrlRepository):
    """Stores copies, so callers only see what they saved."""

    def __init__(self, items: Collection[UrlItem] = ()) -> None:
        self._items: dict[UrlItemId, UrlItem] = {}
        self.saves = 0
        for item in items:
            self._items[item.id] = item.model_copy(deep=True)

    async def get(self, id: UrlItemId) -> UrlItem | None:
        item = self._items.get(id)
        return item.model_copy(deep=True) if item else None

    async def add(self, item: UrlItem) -> None:
        self._items[item.id] = item.model_copy(deep=True)

    async def save(self, item: UrlItem) -> None:
        self.saves += 1
        self._items[item.id] = item.model_copy(deep=True)

    async def list_by_status(
        self,
        statuses: Collection[UrlItemStatus],
        limit: int,
        transitioned_before: datetime | None = None,
    ) -> list[UrlItem]:
        matching = [
            i
            for i in self._items.values()
            if i.status in statuses
            and (transitioned_before is None or i.last_transition_at <= transitioned_before)
        ]
        matching.sort(key=lambda i: (-i.priority, i.created_at))
        return [i.model_copy(deep=True) for i in matching[:limit]]

    async def list_due_retries(self, now: datetime, limit: int) -> list[UrlItem]:
        due = [i for i in self._items.values() if i.is_retry_due(now)]
        due.sort(key=lambda i: i.retry_not_before)
        return [i.model_copy(deep=True) for i in due[:limit]]

    async def count_by_status(self, statuses: Collection[UrlItemStatus]) -> int:
        return sum(1 for i in self._items.values() if i.status in statuses)

    def stored(self, id: UrlItemId) -> UrlItem:
        return self._items[id]

    def all(self) -> list[UrlItem]:
        return list(self._items.values())


class InMemoryServiceAccountRepository(ServiceAccountRepository):
    """Compare-and-increment happens without an await, like a single UPDATE."""

    def __init__(self, accounts: Collection[ServiceAccount] = ()) -> None:
        self._accounts: dict[ServiceAccountId, ServiceAccount] = {}
        for account in accounts:
            self._accounts[account.id] = account.model_copy(deep=True)

    async def get(self, id: ServiceAccountId) -> ServiceAccount | None:
        account = self._accounts.get(id)
        return account.model_copy(deep=True) if account else None

    async def add(self, account: ServiceAccount) -> None:
        self._accounts[account.id] = account.model_copy(deep=True)

    async def save(self, account: ServiceAccount) -> None:
        stored = self._accounts[account.id]
        stored.project_id = account.project_id
        stored.credential_ref = account.credential_ref
        stored.quota_limit_per_day = account.quota_limit_per_day
        stored.deleted_at = account.deleted_at

    async def list_active(self) -> list[ServiceAccount]:
        active = [a for a in self._accounts.values() if not a.is_deleted]
        active.sort(key=lambda a: a.created_at)
        return [a.model_copy(deep=True) for a in active]

    async def try_increment_quota(
        self,
        id: ServiceAccountId,
        units: int,
        period_start: datetime,
        global_cap: int | None = None,
    ) -> bool:
        # Let concurrent callers interleave up to the atomic section
        await asyncio.sleep(0)

        account = self._accounts.get(id)
        if account is None or account.is_deleted:
            return False
        if account.quota_period_start != period_start:
            return False
        if account.quota_used_in_period + units > account.quota_limit_per_day:
            return False
        if global_cap is not None and self._total(period_start) + units > global_cap:
            return False
        account.quota_used_in_period += units
        return True

    async def reset_quota(
        self, id: ServiceAccountId, period_start: datetime, only_if_older: bool = True
    ) -> bool:
        account = self._accounts.get(id)
        if account is None:
            return False
        if (
            only_if_older
            and account.quota_period_start is not None
            and account.quota_period_start >= period_start
        ):
            return False
        account.quota_used_in_period = 0
        account.quota_period_start = period_start
        return True

    async def total_used(self, period_start: datetime) -> int:
        return self._total(period_start)

    def _total(self, period_start: datetime) -> int:
        return sum(
            a.quota_used_in_period
            for a in self._accounts.values()
            if a.quota_period_start == period_start
        )

    def stored(self, id: ServiceAccountId) -> ServiceAccount:
        return self._accounts[id]


class FakeChecker(ReachabilityChecker):
    """Replays scripted results per URL; unscripted URLs are reachable."""

    def __init__(self, results: dict[str, list[ReachabilityResult | Exception]] | None = None):
        self._results = {url: list(seq) for url, seq in (results or {}).items()}
        self.calls: list[str] = []

    async def check(self, url: str) -> ReachabilityResult:
        self.calls.append(url)
        script = self._results.get(url)
        if not script:
            return ReachabilityResult.ok(200)
        result = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeIndexingApi(IndexingApiClient):
    """Accepts and reports every URL as processed unless told otherwise."""

    def __init__(
        self,
        receipts: dict[str, SubmissionReceipt | Exception] | None = None,
        outcomes: dict[str, OutcomeReport | Exception] | None = None,
    ) -> None:
        self.receipts = receipts or {}
        self.outcomes = outcomes or {}
        self.published: list[tuple[ServiceAccountId, str, NotificationType]] = []
        self.queried: list[tuple[ServiceAccountId, str, NotificationType]] = []

    async def publish(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> SubmissionReceipt:
        self.published.append((account.id, url, notification))
        receipt = self.receipts.get(url, SubmissionReceipt(accepted=True, status_code=200))
        if isinstance(receipt, Exception):
            raise receipt
        return receipt

    async def get_outcome(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> OutcomeReport:
        self.queried.append((account.id, url, notification))
        report = self.outcomes.get(url, OutcomeReport(processed=True, status_code=200))
        if isinstance(report, Exception):
            raise report
        return report


class FakeSettingsProvider(SettingsProvider):
    def __init__(self, settings: PipelineSettings | None = None) -> None:
        self.settings = settings or PipelineSettings(enabled=True, requests_per_day=1000)
        self.reads = 0

    async def get(self) -> PipelineSettings:
        self.reads += 1
        return self.settings


class FakeStageFactory(StageFactory):
    """Hands out the same stages for every unit of work and counts them."""

    def __init__(self, stages: PipelineStages) -> None:
        self.stages = stages
        self.opened = 0
        self.committed = 0

    @asynccontextmanager
    async def open(self) -> AsyncIterator[PipelineStages]:
        self.opened += 1
        yield self.stages
        self.committed += 1
