"""Base for jobs the hosted loop fires on a cadence."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class Schedule(ABC):
    """A dataclass whose fields are resolved from the container per firing.

    Only the work lives here; interval or cron comes from ``SchedulerConfig``.
    """

    @abstractmethod
    async def run(self, **params: Any) -> None: ...
