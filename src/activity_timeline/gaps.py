"""Find the empty stretches of a day, one insertion slot at a time."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import Gap, Presence
from .presence import PresenceOverlay


def free_ranges(
    placed: Iterable[tuple[int, int]], window_start: int, window_end: int
) -> list[tuple[int, int]]:
    """Complement of ``placed`` inside ``[window_start, window_end)``, ascending."""
    clipped = sorted(
        (max(start, window_start), min(end, window_end))
        for start, end in placed
        if min(end, window_end) > max(start, window_start)
    )
    ranges: list[tuple[int, int]] = []
    cursor = window_start
    for start, end in clipped:
        if start > cursor:
            ranges.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < window_end:
        ranges.append((cursor, window_end))
    return ranges


def detect_gaps(
    placed: Iterable[tuple[int, int]],
    window_start: int,
    window_end: int,
    slot_ms: int,
    presence: Optional[PresenceOverlay] = None,
) -> list[Gap]:
    """Emit a gap per free slot, walking backward from the end of the window.

    Each free range is walked down from its upper edge in ``slot_ms`` steps,
    so slots hang off the next placed interval (or the window end). The last
    slot of a range is cut at its lower edge rather than rounded outward, and
    no gap overlaps a placed interval. The result is ascending by start.
    """
    if slot_ms <= 0:
        raise ValueError("slot_ms must be positive")
    gaps: list[Gap] = []
    for range_start, range_end in reversed(free_ranges(placed, window_start, window_end)):
        cursor = range_end
        while cursor > range_start:
            start = max(range_start, cursor - slot_ms)
            state = (
                presence.presence_for(start, cursor)
                if presence is not None
                else Presence.UNKNOWN
            )
            gaps.append(Gap(start=start, end=cursor, presence=state))
            cursor = start
    gaps.reverse()
    return gaps
