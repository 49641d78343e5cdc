"""Split intervals that cross local midnight."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from datetime import date, tzinfo
from typing import Iterable, Optional

from .days import day_of, next_midnight
from .models import Interval


def split_at_midnight(
    interval: Interval, tz: Optional[tzinfo] = None
) -> list[tuple[date, Interval]]:
    """Return ``(day, segment)`` pairs covering ``interval`` exactly.

    The first segment keeps the interval as-is apart from its end; every later
    segment starts at a midnight and is a virtual continuation pointing back to
    the original start. An interval that does not cross midnight comes back
    unchanged.
    """
    first_day = day_of(interval.start, tz)
    boundary = next_midnight(interval.start, tz)
    if interval.end <= boundary:
        return [(first_day, interval)]

    origin_start = (
        interval.continued_from if interval.continued_from is not None else interval.start
    )
    pieces = [(first_day, replace(interval, end=boundary))]
    current = boundary
    while current < interval.end:
        boundary = next_midnight(current, tz)
        pieces.append(
            (
                day_of(current, tz),
                replace(
                    interval,
                    start=current,
                    end=min(boundary, interval.end),
                    continued_from=origin_start,
                ),
            )
        )
        current = boundary
    return pieces


def split_by_day(
    intervals: Iterable[Interval], tz: Optional[tzinfo] = None
) -> dict[date, list[Interval]]:
    """Attribute every (split) segment to its local day, sorted by start."""
    by_day: defaultdict[date, list[Interval]] = defaultdict(list)
    for interval in intervals:
        for day, piece in split_at_midnight(interval, tz):
            by_day[day].append(piece)
    for pieces in by_day.values():
        pieces.sort(key=lambda item: (item.start, item.sequence))
    return dict(by_day)
