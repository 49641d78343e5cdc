"""Local calendar-day windows and day keys.

All times inside the engine are epoch milliseconds. A ``tz`` of ``None``
means the system local zone, the same way ``datetime.fromtimestamp`` treats
it; pass an explicit ``tzinfo`` for deterministic results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator, Optional

DAY_KEY_FMT = "%Y-%m-%d"


@dataclass(frozen=True, slots=True)
class DayWindow:
    """``[start, end)`` between two consecutive local midnights."""

    day: date
    start: int
    end: int

    @property
    def key(self) -> str:
        return self.day.strftime(DAY_KEY_FMT)

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp < self.end

    def clamp_end(self, now: int, is_today: bool) -> int:
        """Return the effective end of the window, clamped to ``now`` for today."""
        if not is_today:
            return self.end
        return max(self.start, min(self.end, now))


def parse_day_key(value: str) -> date:
    try:
        return datetime.strptime(value, DAY_KEY_FMT).date()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid day key {value!r}; expected YYYY-MM-DD") from exc


def to_datetime(timestamp: int, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000.0, tz)


def to_epoch_ms(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


def local_midnight(day: date, tz: Optional[tzinfo] = None) -> int:
    return to_epoch_ms(datetime.combine(day, time.min, tzinfo=tz))


def day_of(timestamp: int, tz: Optional[tzinfo] = None) -> date:
    return to_datetime(timestamp, tz).date()


def day_key_for(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    return day_of(timestamp, tz).strftime(DAY_KEY_FMT)


def day_window(day: date | str, tz: Optional[tzinfo] = None) -> DayWindow:
    if isinstance(day, str):
        day = parse_day_key(day)
    return DayWindow(
        day=day,
        start=local_midnight(day, tz),
        end=local_midnight(day + timedelta(days=1), tz),
    )


def window_for(timestamp: int, tz: Optional[tzinfo] = None) -> DayWindow:
    return day_window(day_of(timestamp, tz), tz)


def next_midnight(timestamp: int, tz: Optional[tzinfo] = None) -> int:
    return window_for(timestamp, tz).end


def iter_days(start: date | str, end: date | str) -> Iterator[date]:
    """Yield each day from ``start`` to ``end`` inclusive."""
    first = parse_day_key(start) if isinstance(start, str) else start
    last = parse_day_key(end) if isinstance(end, str) else end
    if last < first:
        raise ValueError("end day must be on or after start day")
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)
