"""Collapse recurring short passive events into expandable groups."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .models import EventGroup, Interval


def group_events(intervals: Iterable[Interval], max_gap_ms: int) -> list[EventGroup]:
    """Group same-label occurrences whose separation is below ``max_gap_ms``.

    Each label is grouped on its own; other labels in between do not break a
    group. The separation is measured from the latest end seen so far in the
    group, so overlapping occurrences always join. Groups come back ordered by
    their first start.
    """
    by_label: defaultdict[str, list[Interval]] = defaultdict(list)
    for interval in intervals:
        by_label[interval.classification].append(interval)

    groups: list[EventGroup] = []
    for label, occurrences in by_label.items():
        occurrences.sort(key=lambda item: (item.start, item.sequence))
        current: list[Interval] = []
        current_end = 0
        for occurrence in occurrences:
            if current and occurrence.start - current_end < max_gap_ms:
                current.append(occurrence)
                current_end = max(current_end, occurrence.end)
                continue
            if current:
                groups.append(EventGroup(classification=label, occurrences=tuple(current)))
            current = [occurrence]
            current_end = occurrence.end
        if current:
            groups.append(EventGroup(classification=label, occurrences=tuple(current)))

    groups.sort(key=lambda group: (group.start, group.classification))
    return groups
