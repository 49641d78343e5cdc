"""Configuration models and helpers for timeline reconstruction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta, tzinfo
from typing import Optional


@dataclass(frozen=True, slots=True)
class TimelineSettings:
    """Tunables for chunking, grouping, presence and gap detection."""

    block_width: timedelta = timedelta(minutes=30)
    group_gap_threshold: Optional[timedelta] = None
    slot_size: timedelta = timedelta(minutes=15)
    presence_window: timedelta = timedelta(minutes=15)
    status_classification: str = "afkstatus"
    inactive_labels: tuple[str, ...] = ("loginwindow",)
    duplicate_tolerance: timedelta = timedelta(seconds=1)

    def __post_init__(self) -> None:
        for name in ("block_width", "slot_size", "presence_window"):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive")
        if self.group_gap_threshold is not None and self.group_gap_threshold < timedelta(0):
            raise ValueError("group_gap_threshold must not be negative")
        if self.duplicate_tolerance < timedelta(0):
            raise ValueError("duplicate_tolerance must not be negative")

    @classmethod
    def from_minutes(
        cls,
        block_minutes: float = 30.0,
        group_gap_minutes: float | None = None,
        slot_minutes: float = 15.0,
        presence_minutes: float | None = None,
    ) -> "TimelineSettings":
        presence = presence_minutes if presence_minutes is not None else slot_minutes
        return cls(
            block_width=timedelta(minutes=block_minutes),
            group_gap_threshold=(
                timedelta(minutes=group_gap_minutes) if group_gap_minutes is not None else None
            ),
            slot_size=timedelta(minutes=slot_minutes),
            presence_window=timedelta(minutes=presence),
        )

    @property
    def block_ms(self) -> int:
        return _to_ms(self.block_width)

    @property
    def slot_ms(self) -> int:
        return _to_ms(self.slot_size)

    @property
    def presence_ms(self) -> int:
        return _to_ms(self.presence_window)

    @property
    def group_gap_ms(self) -> int:
        threshold = self.group_gap_threshold
        return _to_ms(threshold) if threshold is not None else self.block_ms

    @property
    def duplicate_tolerance_ms(self) -> int:
        return _to_ms(self.duplicate_tolerance)

    def is_inactive_label(self, label: Optional[str]) -> bool:
        if not label:
            return False
        lowered = label.lower()
        return any(lowered == item.lower() for item in self.inactive_labels)

    def cache_token(self) -> tuple:
        return (
            self.block_ms,
            self.group_gap_ms,
            self.slot_ms,
            self.presence_ms,
            self.status_classification,
            tuple(self.inactive_labels),
            self.duplicate_tolerance_ms,
        )


@dataclass(frozen=True, slots=True)
class TimelineRequest:
    """What to reconstruct: one local day, as seen at ``now`` (epoch ms)."""

    day_key: str
    now: int
    show_manual: bool = True
    show_passive: bool = True
    tz: Optional[tzinfo] = None


def _to_ms(value: timedelta) -> int:
    return int(round(value.total_seconds() * 1000))
