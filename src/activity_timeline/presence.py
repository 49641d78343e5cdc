"""Presence overlay computed from the status stream.

The day is cut into fixed probe windows aligned to local midnight. A window
with any "active" status overlap is active; a window with only "inactive"
overlap is inactive-only; a window the status stream never touched is
unknown and is never used to hide content.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .days import DayWindow
from .models import Interval, Presence


@dataclass(frozen=True, slots=True)
class ProbeWindow:
    start: int
    end: int
    active_ms: int = 0
    inactive_ms: int = 0

    @property
    def state(self) -> Presence:
        if self.active_ms > 0:
            return Presence.ACTIVE
        if self.inactive_ms > 0:
            return Presence.INACTIVE
        return Presence.UNKNOWN

    @property
    def majority_active(self) -> bool:
        """Duration-weighted majority of active over inactive overlap."""
        return self.active_ms > self.inactive_ms


class PresenceOverlay:
    """Per-window presence for one day."""

    def __init__(self, window: DayWindow, probe_ms: int, probes: dict[int, ProbeWindow]) -> None:
        self.window = window
        self.probe_ms = probe_ms
        self._probes = probes

    @property
    def has_data(self) -> bool:
        return bool(self._probes)

    def probes(self) -> list[ProbeWindow]:
        return [self._probes[key] for key in sorted(self._probes)]

    def state_at(self, timestamp: int) -> Presence:
        if not self.window.contains(timestamp):
            return Presence.UNKNOWN
        probe = self._probes.get((timestamp - self.window.start) // self.probe_ms)
        return probe.state if probe else Presence.UNKNOWN

    def states(self, start: int, end: int) -> list[Presence]:
        found = []
        for index in _probe_indices(self.window, self.probe_ms, start, end):
            probe = self._probes.get(index)
            found.append(probe.state if probe else Presence.UNKNOWN)
        return found

    def is_inactive_only(self, start: int, end: int) -> bool:
        """True when every probe window touching ``[start, end)`` is inactive-only."""
        states = self.states(start, end)
        return bool(states) and all(state is Presence.INACTIVE for state in states)

    def presence_for(self, start: int, end: int) -> Presence:
        states = self.states(start, end)
        if any(state is Presence.ACTIVE for state in states):
            return Presence.ACTIVE
        if states and all(state is Presence.INACTIVE for state in states):
            return Presence.INACTIVE
        return Presence.UNKNOWN


def _probe_indices(window: DayWindow, probe_ms: int, start: int, end: int) -> range:
    start = max(start, window.start)
    end = min(end, window.end)
    if end <= start:
        return range(0)
    first = (start - window.start) // probe_ms
    last = (end - 1 - window.start) // probe_ms
    return range(first, last + 1)


def build_presence(
    status_intervals: Iterable[Interval], window: DayWindow, probe_ms: int
) -> PresenceOverlay:
    """Accumulate active/inactive overlap per probe window."""
    active: dict[int, int] = {}
    inactive: dict[int, int] = {}
    for interval in status_intervals:
        target = active if interval.classification == Presence.ACTIVE.value else inactive
        for index in _probe_indices(window, probe_ms, interval.start, interval.end):
            probe_start = window.start + index * probe_ms
            probe_end = min(probe_start + probe_ms, window.end)
            overlap = interval.overlap_ms(probe_start, probe_end)
            if overlap > 0:
                target[index] = target.get(index, 0) + overlap

    probes: dict[int, ProbeWindow] = {}
    for index in sorted(set(active) | set(inactive)):
        probe_start = window.start + index * probe_ms
        probes[index] = ProbeWindow(
            start=probe_start,
            end=min(probe_start + probe_ms, window.end),
            active_ms=active.get(index, 0),
            inactive_ms=inactive.get(index, 0),
        )
    return PresenceOverlay(window, probe_ms, probes)
