"""Turn raw manual markers and passive events into canonical intervals."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from .diagnostics import Diagnostics, MalformedRecordError, report_dropped
from .models import (
    Interval,
    PendingMarker,
    Presence,
    RawManualMarker,
    RawPassiveEvent,
    SourceKind,
)

logger = logging.getLogger(__name__)

_BROWSER_SUFFIXES: tuple[str, ...] = (
    " - Microsoft Edge",
    " - Google Chrome",
    " - Mozilla Firefox",
    " - Brave",
    " - Opera",
    " - Safari",
)

_EXTRA_TAB_COUNT_PATTERN = re.compile(r"\s+and\s+\d+\s+more\s+pages?", re.IGNORECASE)

# Leaves a year of headroom so local midnights and day splits stay representable.
LATEST_TIMESTAMP_MS = int(datetime(9999, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)


def normalize_display_name(
    source_classification: Optional[str], display_name: Optional[str]
) -> str:
    """Derive the classification label of a passive event.

    Browser suffixes and tab counters are removed so the same page reported by
    different watchers collapses to one label.
    """
    normalized = (display_name or "").strip()
    for suffix in _BROWSER_SUFFIXES:
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)].rstrip(" -")
            break
    normalized = _strip_tab_count(normalized)
    normalized = re.sub(r"\s{2,}", " ", normalized).strip()
    if normalized:
        return normalized
    fallback = (source_classification or "").strip()
    return fallback[:1].upper() + fallback[1:] if fallback else "Unknown"


def status_label(event: RawPassiveEvent) -> str:
    """Map a presence-stream event to ``"active"`` or ``"inactive"``."""
    status = event.payload.get("status") if event.payload else None
    if status == "not-afk" or (status is None and event.display_name == "Active"):
        return Presence.ACTIVE.value
    return Presence.INACTIVE.value


def _strip_tab_count(value: str) -> str:
    cleaned = _EXTRA_TAB_COUNT_PATTERN.sub("", value)
    return cleaned.strip(" -|")


def _require_timestamp(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(f"{what} is not a number: {value!r}")
    if not math.isfinite(value):
        raise MalformedRecordError(f"{what} is not finite: {value!r}")
    if value < 0:
        raise MalformedRecordError(f"{what} is negative: {value!r}")
    if value > LATEST_TIMESTAMP_MS:
        raise MalformedRecordError(f"{what} is out of range: {value!r}")
    return int(value)


def normalize_marker(marker: RawManualMarker, sequence: int) -> PendingMarker:
    """Validate a manual marker; its end is inferred later."""
    start = _require_timestamp(marker.timestamp, "timestamp")
    return PendingMarker(
        start=start,
        activity=marker.activity,
        sequence=sequence,
        origin_ref=f"manual-{sequence}",
        classification_id=marker.classification_id,
    )


def normalize_passive_event(
    event: RawPassiveEvent, sequence: int, status_classification: str = "afkstatus"
) -> Interval:
    start = _require_timestamp(event.timestamp, "timestamp")
    duration = event.duration_seconds
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise MalformedRecordError(f"duration is not a number: {duration!r}")
    if not math.isfinite(duration):
        raise MalformedRecordError(f"duration is not finite: {duration!r}")
    if duration < 0:
        raise MalformedRecordError(f"duration is negative: {duration!r}")
    end = start + int(round(duration * 1000))
    if end > LATEST_TIMESTAMP_MS:
        raise MalformedRecordError(f"duration runs out of range: {duration!r}")
    return Interval(
        start=start,
        end=end,
        classification=(
            status_label(event)
            if event.source_classification == status_classification
            else normalize_display_name(event.source_classification, event.display_name)
        ),
        source_kind=SourceKind.PASSIVE,
        origin_ref=event.event_id or f"{event.source_id}-{start}-{sequence}",
        source_id=event.source_id,
        source_classification=event.source_classification,
        sequence=sequence,
    )


def normalize_markers(
    markers: Iterable[RawManualMarker], diagnostics: Optional[Diagnostics] = None
) -> list[PendingMarker]:
    """Normalize a batch; malformed markers are dropped and reported."""
    normalized: list[PendingMarker] = []
    for sequence, marker in enumerate(markers):
        try:
            normalized.append(normalize_marker(marker, sequence))
        except MalformedRecordError as exc:
            report_dropped(diagnostics, "manual", f"manual-{sequence}", str(exc))
    return normalized


def normalize_passive_events(
    events: Iterable[RawPassiveEvent],
    diagnostics: Optional[Diagnostics] = None,
    status_classification: str = "afkstatus",
) -> list[Interval]:
    normalized: list[Interval] = []
    for sequence, event in enumerate(events):
        try:
            normalized.append(normalize_passive_event(event, sequence, status_classification))
        except MalformedRecordError as exc:
            ref = event.event_id or f"{event.source_id}#{sequence}"
            report_dropped(diagnostics, "passive", ref, str(exc))
    normalized.sort(key=lambda item: (item.start, item.sequence))
    return normalized


def filter_visible_events(
    events: Iterable[RawPassiveEvent], visibility: Mapping[str, bool]
) -> list[RawPassiveEvent]:
    """Drop events from buckets marked invisible; unknown buckets stay visible."""
    visible = [event for event in events if visibility.get(event.source_id, True)]
    logger.debug("Visibility filter kept %d events", len(visible))
    return visible


def merge_consecutive_duplicates(
    intervals: Sequence[Interval], tolerance_ms: int = 1000
) -> list[Interval]:
    """Merge same-source, same-label intervals that touch within ``tolerance_ms``.

    ``intervals`` must be sorted by start. Only directly consecutive entries
    are merged.
    """
    merged: list[Interval] = []
    for interval in intervals:
        if merged:
            current = merged[-1]
            same = (
                current.classification == interval.classification
                and current.source_id == interval.source_id
            )
            if same and interval.start - current.end <= tolerance_ms:
                merged[-1] = replace(current, end=max(current.end, interval.end))
                continue
        merged.append(interval)
    return merged
