"""Domain models for timeline reconstruction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SourceKind(str, Enum):
    MANUAL = "manual"
    PASSIVE = "passive"


class Presence(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class RawManualMarker:
    """An operator-entered "I started doing X at time T" record."""

    activity: str
    timestamp: int
    classification_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RawPassiveEvent:
    """An interval reported by the external passive tracker."""

    source_id: str
    source_classification: str
    timestamp: int
    duration_seconds: float
    payload: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    display_name: Optional[str] = None
    event_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PendingMarker:
    """A normalized manual marker whose end has not been inferred yet."""

    start: int
    activity: str
    sequence: int
    origin_ref: str
    classification_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Interval:
    """Canonical ``[start, end)`` unit shared by both sources.

    ``continued_from`` is set on virtual continuations and holds the start of
    the interval the segment was split from.
    """

    start: int
    end: int
    classification: str
    source_kind: SourceKind
    origin_ref: str
    source_id: Optional[str] = None
    source_classification: Optional[str] = None
    classification_id: Optional[str] = None
    sequence: int = 0
    is_live: bool = False
    continued_from: Optional[int] = None

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Interval end {self.end} precedes start {self.start}")

    @property
    def duration_ms(self) -> int:
        return self.end - self.start

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start) / 1000.0

    @property
    def is_continuation(self) -> bool:
        return self.continued_from is not None

    def overlap_ms(self, start: int, end: int) -> int:
        return max(0, min(self.end, end) - max(self.start, start))


@dataclass(frozen=True, slots=True)
class TimeBlock:
    """A fixed-width, day-aligned window and the passive intervals touching it."""

    block_start: int
    block_end: int
    members: tuple[Interval, ...]
    dominant: str
    totals: tuple[tuple[str, int], ...] = ()
    inactive_only: bool = False

    @property
    def total_ms(self) -> int:
        return sum(ms for _, ms in self.totals)


@dataclass(frozen=True, slots=True)
class MergedBlock:
    """A maximal run of adjacent equivalent blocks."""

    start: int
    end: int
    dominant: str
    blocks: tuple[TimeBlock, ...]
    inactive_only: bool = False

    @property
    def members(self) -> list[Interval]:
        seen: set[tuple[str, int]] = set()
        ordered: list[Interval] = []
        for block in self.blocks:
            for member in block.members:
                key = (member.origin_ref, member.start)
                if key in seen:
                    continue
                seen.add(key)
                ordered.append(member)
        return ordered

    @property
    def total_duration_seconds(self) -> float:
        return sum(block.total_ms for block in self.blocks) / 1000.0

    def breakdown(self) -> list[tuple[str, float]]:
        """Cumulative seconds per classification, largest first."""
        totals: dict[str, int] = {}
        for block in self.blocks:
            for label, ms in block.totals:
                totals[label] = totals.get(label, 0) + ms
        ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return [(label, ms / 1000.0) for label, ms in ordered]


@dataclass(frozen=True, slots=True)
class EventGroup:
    classification: str
    occurrences: tuple[Interval, ...]

    @property
    def total_duration_seconds(self) -> float:
        return sum(item.duration_ms for item in self.occurrences) / 1000.0

    @property
    def start(self) -> int:
        return self.occurrences[0].start

    @property
    def end(self) -> int:
        return max(item.end for item in self.occurrences)

    @property
    def time_range(self) -> tuple[int, int]:
        return self.start, self.end

    def __len__(self) -> int:
        return len(self.occurrences)


@dataclass(frozen=True, slots=True)
class Gap:
    start: int
    end: int
    presence: Presence = Presence.UNKNOWN

    @property
    def duration_ms(self) -> int:
        return self.end - self.start
