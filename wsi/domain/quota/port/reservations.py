from abc import abstractmethod
from typing import Protocol

from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.shared.port import Port


class QuotaReservations(Port, Protocol):
    """Quota reservations that are durable once the call returns.

    A unit reserved here stays spent even if the caller's own unit of work is
    later rolled back.
    """

    @abstractmethod
    async def reserve(self, global_cap: int) -> ServiceAccountId | None:
        """Reserve one unit on the best account, or None when nothing can take it."""
        ...

    @abstractmethod
    async def remaining_global(self, cap: int) -> int: ...
