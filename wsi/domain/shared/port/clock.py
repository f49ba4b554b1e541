from abc import abstractmethod
from datetime import datetime
from typing import Protocol

from wsi.domain.shared.port import Port


class Clock(Port, Protocol):
    """Injectable time source. Always returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime: ...
