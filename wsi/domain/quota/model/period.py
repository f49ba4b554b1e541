"""Quota periods: tenant-local calendar days."""

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class QuotaPeriod:
    """Maps instants to the tenant-local day they fall in.

    Midnights are built in local time and converted to UTC, so DST days are
    23 or 25 hours long rather than a fixed 24.
    """

    tz: ZoneInfo

    @classmethod
    def for_timezone(cls, name: str) -> "QuotaPeriod":
        return cls(tz=ZoneInfo(name))

    def start(self, now: datetime) -> datetime:
        """UTC instant of the local midnight that opened the period containing ``now``."""
        local = now.astimezone(self.tz)
        return datetime.combine(local.date(), time.min, tzinfo=self.tz).astimezone(UTC)

    def next_boundary(self, now: datetime) -> datetime:
        """UTC instant of the next local midnight after ``now``."""
        local = now.astimezone(self.tz)
        tomorrow = local.date() + timedelta(days=1)
        return datetime.combine(tomorrow, time.min, tzinfo=self.tz).astimezone(UTC)

    def time_until_next(self, now: datetime) -> timedelta:
        return self.next_boundary(now) - now

    def is_current(self, period_start: datetime | None, now: datetime) -> bool:
        return period_start is not None and period_start >= self.start(now)
