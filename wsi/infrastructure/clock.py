from datetime import UTC, datetime

from wsi.domain.shared.port.clock import Clock


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)
