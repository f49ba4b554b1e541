from abc import abstractmethod
from typing import Protocol

from wsi.domain.shared.model.value import ValueObject
from wsi.domain.shared.port import Port


class ReachabilityResult(ValueObject):
    """Outcome of one fetch of a URL."""

    reachable: bool
    status_code: int | None = None
    transient: bool = False  # Worth another immediate attempt (network, timeout, 5xx, 429)
    error: str | None = None

    @classmethod
    def ok(cls, status_code: int) -> "ReachabilityResult":
        return cls(reachable=True, status_code=status_code)

    @classmethod
    def failed(
        cls, error: str, status_code: int | None = None, transient: bool = False
    ) -> "ReachabilityResult":
        return cls(reachable=False, status_code=status_code, transient=transient, error=error)


class ReachabilityChecker(Port, Protocol):
    @abstractmethod
    async def check(self, url: str) -> ReachabilityResult:
        """Fetch ``url`` once and validate it is indexable.

        Must not raise for remote failures; they are reported in the result.
        """
        ...
