from abc import abstractmethod
from datetime import datetime
from typing import Protocol

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.shared.port import Port


class ServiceAccountRepository(Port, Protocol):
    @abstractmethod
    async def get(self, id: ServiceAccountId) -> ServiceAccount | None: ...

    @abstractmethod
    async def add(self, account: ServiceAccount) -> None: ...

    @abstractmethod
    async def save(self, account: ServiceAccount) -> None:
        """Persist project, credential, limit and deletion; never the usage counter."""
        ...

    @abstractmethod
    async def list_active(self) -> list[ServiceAccount]:
        """Accounts without ``deleted_at``, with their quota fields."""
        ...

    @abstractmethod
    async def try_increment_quota(
        self,
        id: ServiceAccountId,
        units: int,
        period_start: datetime,
        global_cap: int | None = None,
    ) -> bool:
        """Atomically add ``units`` to the account's usage.

        Succeeds only if the account is not deleted, belongs to ``period_start``,
        ``used + units <= limit``, and (when ``global_cap`` is set) the usage of
        all accounts in ``period_start`` plus ``units`` stays within the cap.
        Must be a single compare-and-increment, safe under concurrent callers.
        """
        ...

    @abstractmethod
    async def reset_quota(
        self, id: ServiceAccountId, period_start: datetime, only_if_older: bool = True
    ) -> bool:
        """Zero the usage and stamp ``period_start``.

        With ``only_if_older`` the reset only happens when the stored period is
        missing or earlier than ``period_start``, so concurrent lazy resets
        apply once.
        """
        ...

    @abstractmethod
    async def total_used(self, period_start: datetime) -> int:
        """Sum of usage of all accounts (deleted included) in ``period_start``."""
        ...
