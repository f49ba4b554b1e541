from abc import abstractmethod
from collections.abc import Collection
from datetime import datetime
from typing import Protocol

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import UrlItemId, UrlItemStatus
from wsi.domain.shared.port import Port


class UrlRepository(Port, Protocol):
    @abstractmethod
    async def get(self, id: UrlItemId) -> UrlItem | None: ...

    @abstractmethod
    async def add(self, item: UrlItem) -> None: ...

    @abstractmethod
    async def save(self, item: UrlItem) -> None:
        """Persist status, attempt count, error fields and new history records."""
        ...

    @abstractmethod
    async def list_by_status(
        self,
        statuses: Collection[UrlItemStatus],
        limit: int,
        transitioned_before: datetime | None = None,
    ) -> list[UrlItem]:
        """Items in any of ``statuses``, highest priority first, then oldest first.

        When ``transitioned_before`` is given, only items whose last transition
        happened at or before that instant are returned.
        """
        ...

    @abstractmethod
    async def list_due_retries(self, now: datetime, limit: int) -> list[UrlItem]:
        """RETRYING items whose ``retry_not_before`` has passed."""
        ...

    @abstractmethod
    async def count_by_status(self, statuses: Collection[UrlItemStatus]) -> int: ...
