"""Plain-dict payloads of timeline results for JSON responses."""

from __future__ import annotations

from datetime import tzinfo
from typing import Any, Dict, Optional

from .days import to_datetime
from .models import EventGroup, Gap, Interval, MergedBlock
from .pipeline import DayTimeline


def _iso(timestamp: int, tz: Optional[tzinfo]) -> str:
    return to_datetime(timestamp, tz).isoformat()


def interval_to_payload(interval: Interval, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    return {
        "kind": "interval",
        "source": interval.source_kind.value,
        "origin_ref": interval.origin_ref,
        "classification": interval.classification,
        "classification_id": interval.classification_id,
        "start": interval.start,
        "end": interval.end,
        "start_time": _iso(interval.start, tz),
        "end_time": _iso(interval.end, tz),
        "duration_seconds": interval.duration_seconds,
        "is_live": interval.is_live,
        "is_continuation": interval.is_continuation,
        "continued_from": interval.continued_from,
    }


def block_to_payload(block: MergedBlock, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    return {
        "kind": "block",
        "classification": block.dominant,
        "start": block.start,
        "end": block.end,
        "start_time": _iso(block.start, tz),
        "end_time": _iso(block.end, tz),
        "block_count": len(block.blocks),
        "total_duration_seconds": block.total_duration_seconds,
        "breakdown": [
            {"classification": label, "seconds": seconds} for label, seconds in block.breakdown()
        ],
        "event_count": len(block.members),
    }


def group_to_payload(group: EventGroup, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    return {
        "kind": "group",
        "classification": group.classification,
        "start": group.start,
        "end": group.end,
        "start_time": _iso(group.start, tz),
        "end_time": _iso(group.end, tz),
        "count": len(group.occurrences),
        "total_duration_seconds": group.total_duration_seconds,
        "occurrences": [interval_to_payload(item, tz) for item in group.occurrences],
    }


def gap_to_payload(gap: Gap, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    return {
        "kind": "gap",
        "start": gap.start,
        "end": gap.end,
        "start_time": _iso(gap.start, tz),
        "end_time": _iso(gap.end, tz),
        "presence": gap.presence.value,
    }


def item_to_payload(item: Any, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    if isinstance(item, Interval):
        return interval_to_payload(item, tz)
    if isinstance(item, MergedBlock):
        return block_to_payload(item, tz)
    if isinstance(item, EventGroup):
        return group_to_payload(item, tz)
    if isinstance(item, Gap):
        return gap_to_payload(item, tz)
    raise TypeError(f"Unsupported timeline item: {type(item).__name__}")


def timeline_to_payload(timeline: DayTimeline, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    return {
        "date": timeline.day_key,
        "is_today": timeline.is_today,
        "window": {"start": timeline.window_start, "end": timeline.window_end},
        "manual": [item_to_payload(item, tz) for item in timeline.manual],
        "passive": [item_to_payload(item, tz) for item in timeline.passive],
        "groups": [group_to_payload(group, tz) for group in timeline.groups],
    }
