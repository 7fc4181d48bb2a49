"""Restaurant-local day boundaries.

A restaurant reports revenue per local calendar day, defined by a fixed UTC
offset in minutes. Windows are computed by shifting "now" into local wall
clock time, truncating to day boundaries there, and shifting the boundaries
back to UTC. Truncating in UTC directly would put orders placed shortly after
local midnight on the previous day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone


@dataclass(frozen=True)
class LocalDayWindow:
    start_utc: datetime
    end_utc: datetime
    offset_minutes: int
    days: int

    def contains(self, instant: datetime) -> bool:
        return self.start_utc <= _as_utc(instant) <= self.end_utc

    def local_dates(self) -> list[str]:
        first = _local_date(self.start_utc, self.offset_minutes)
        return [(first + timedelta(days=index)).isoformat() for index in range(self.days)]


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _local_date(instant: datetime, offset_minutes: int) -> date:
    return (_as_utc(instant) + timedelta(minutes=offset_minutes)).date()


def local_day_window(now_utc: datetime, offset_minutes: int, days: int) -> LocalDayWindow:
    if days < 1:
        raise ValueError("days must be >= 1")

    offset = timedelta(minutes=offset_minutes)
    local_today = _local_date(now_utc, offset_minutes)

    end_local = datetime.combine(local_today, time.max, tzinfo=timezone.utc)
    start_local = datetime.combine(
        local_today - timedelta(days=days - 1),
        time.min,
        tzinfo=timezone.utc,
    )
    return LocalDayWindow(
        start_utc=start_local - offset,
        end_utc=end_local - offset,
        offset_minutes=offset_minutes,
        days=days,
    )


def to_local_date_string(instant_utc: datetime, offset_minutes: int) -> str:
    return _local_date(instant_utc, offset_minutes).isoformat()
