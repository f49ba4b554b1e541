"""QuotaLedger - per-account daily quota reservations."""

import logging
from collections.abc import Collection

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.quota.model.period import QuotaPeriod
from wsi.domain.shared.error import NotFoundError, ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service

logger = logging.getLogger(__name__)


class QuotaLedger(Service):
    """Decides which service account may submit next and reserves its quota.

    Reservations are delegated to the repository's compare-and-increment, so
    concurrent callers can never push an account past its daily limit, even
    across processes. Usage counters roll over lazily: the first access after
    a period boundary resets the account, stamped with the new period start.
    """

    accounts: ServiceAccountRepository
    clock: Clock
    period: QuotaPeriod

    async def try_consume(
        self,
        account_id: ServiceAccountId,
        units: int = 1,
        *,
        global_cap: int | None = None,
    ) -> bool:
        """Reserve ``units`` of quota on an account.

        Returns False (without mutating anything) when the account is unknown,
        soft-deleted, would exceed its limit, or would push total usage past
        ``global_cap``.
        """
        if units <= 0:
            raise ValidationError("units must be positive", field="units")

        account = await self.accounts.get(account_id)
        if account is None or account.is_deleted:
            return False

        period_start = self.period.start(self.clock.now())
        await self._roll_over(account)

        consumed = await self.accounts.try_increment_quota(
            account_id, units, period_start, global_cap=global_cap
        )
        if consumed:
            logger.debug(f"Consumed {units} unit(s) on account {account_id}")
        else:
            logger.debug(f"Quota reservation refused for account {account_id}")
        return consumed

    async def reserve(self, global_cap: int | None = None) -> ServiceAccountId | None:
        """Pick an account and reserve one unit on it.

        A lost race excludes that account and tries the next candidate. The
        loop is bounded by the number of active accounts.
        """
        excluded: set[ServiceAccountId] = set()
        for _ in range(await self.active_account_count() + 1):
            candidate = await self.select_candidate(excluding=excluded)
            if candidate is None:
                return None
            if await self.try_consume(candidate, 1, global_cap=global_cap):
                return candidate
            excluded.add(candidate)
        return None

    async def select_candidate(
        self, excluding: Collection[ServiceAccountId] = frozenset()
    ) -> ServiceAccountId | None:
        """Active account with the most remaining quota, earliest created on ties."""
        candidates: list[ServiceAccount] = []
        for account in await self.accounts.list_active():
            if account.is_deleted or account.id in excluding:
                continue
            await self._roll_over(account)
            if account.remaining_quota > 0:
                candidates.append(account)

        if not candidates:
            return None

        best = min(candidates, key=lambda a: (-a.remaining_quota, a.created_at))
        return best.id

    async def reset(self, account_id: ServiceAccountId) -> None:
        account = await self.accounts.get(account_id)
        if account is None:
            raise NotFoundError(f"Service account not found: {account_id}")
        period_start = self.period.start(self.clock.now())
        await self.accounts.reset_quota(account_id, period_start, only_if_older=False)
        logger.info(f"Quota reset for account {account_id}")

    async def global_used(self) -> int:
        return await self.accounts.total_used(self.period.start(self.clock.now()))

    async def remaining_global(self, cap: int) -> int:
        return max(cap - await self.global_used(), 0)

    async def active_account_count(self) -> int:
        return len(await self.accounts.list_active())

    async def _roll_over(self, account: ServiceAccount) -> None:
        """Lazily reset an account whose usage belongs to an earlier period."""
        now = self.clock.now()
        if self.period.is_current(account.quota_period_start, now):
            return

        period_start = self.period.start(now)
        reset = await self.accounts.reset_quota(account.id, period_start, only_if_older=True)
        if reset:
            logger.info(
                f"Quota period rolled over for account {account.id} "
                f"(was {account.quota_period_start}, now {period_start})"
            )
            account.quota_used_in_period = 0
            account.quota_period_start = period_start
            return

        # Another caller rolled it over first and may already have consumed.
        fresh = await self.accounts.get(account.id)
        if fresh is not None:
            account.quota_used_in_period = fresh.quota_used_in_period
            account.quota_period_start = fresh.quota_period_start
