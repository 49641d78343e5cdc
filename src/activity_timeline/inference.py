"""Infer the end of each manual marker from its successor.

A manual activity never stores its duration. After a stable sort by
``(timestamp, authoring sequence)``:

* every marker but the last ends where the next one starts, on whatever day
  that falls;
* the last marker ends at ``now`` when its day is today (it is *live*);
* the last marker of a past day ends at that day's local midnight.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, tzinfo
from typing import Optional, Sequence

from .days import day_of, next_midnight
from .models import Interval, PendingMarker, SourceKind


def sort_markers(markers: Sequence[PendingMarker]) -> list[PendingMarker]:
    return sorted(markers, key=lambda marker: (marker.start, marker.sequence))


def infer_manual_intervals(
    markers: Sequence[PendingMarker],
    today: date,
    tz: Optional[tzinfo] = None,
    now: Optional[int] = None,
) -> list[Interval]:
    """Fold the sorted markers into intervals.

    ``today`` decides whether the last marker is live. When ``now`` is omitted
    the live interval is returned with zero length; use :func:`with_live_end`
    to stretch it.
    """
    ordered = sort_markers(markers)
    intervals: list[Interval] = []
    for index, marker in enumerate(ordered):
        is_live = False
        if index + 1 < len(ordered):
            end = ordered[index + 1].start
        elif day_of(marker.start, tz) >= today:
            is_live = True
            end = marker.start
        else:
            end = next_midnight(marker.start, tz)
        interval = Interval(
            start=marker.start,
            end=end,
            classification=marker.activity,
            source_kind=SourceKind.MANUAL,
            origin_ref=marker.origin_ref,
            classification_id=marker.classification_id,
            sequence=marker.sequence,
            is_live=is_live,
        )
        if is_live and now is not None:
            interval = with_live_end(interval, now)
        intervals.append(interval)
    return intervals


def with_live_end(interval: Interval, now: int) -> Interval:
    """Stretch a live interval to ``now``; never shorter than zero."""
    if not interval.is_live:
        return interval
    return replace(interval, end=max(interval.start, now))
