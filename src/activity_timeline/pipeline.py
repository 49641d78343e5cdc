"""Reconstruct render-ready day timelines from manual markers and passive events.

The work splits in two stages. Everything that depends only on the records,
the settings, the zone and *which day is today* (normalizing, inferring,
splitting, chunking, merging, presence, grouping) is memoized under a content
hash. The stage that depends on the exact ``now`` (stretching the live
interval and detecting gaps up to ``now``) runs on every call and is cheap.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import date, tzinfo
from typing import Iterable, Mapping, Optional, Sequence, Union

from .blocks import chunk_into_blocks, merge_blocks
from .config import TimelineRequest, TimelineSettings
from .days import DayWindow, day_of, day_window, iter_days, parse_day_key
from .diagnostics import Diagnostics, DroppedRecord
from .gaps import detect_gaps
from .grouping import group_events
from .inference import infer_manual_intervals, with_live_end
from .models import EventGroup, Gap, Interval, MergedBlock, RawManualMarker, RawPassiveEvent
from .normalization import (
    filter_visible_events,
    merge_consecutive_duplicates,
    normalize_markers,
    normalize_passive_events,
)
from .presence import PresenceOverlay, build_presence
from .splitting import split_by_day

logger = logging.getLogger(__name__)

ManualItem = Union[Interval, Gap]
PassiveItem = Union[MergedBlock, Gap]
RenderItem = Union[Interval, MergedBlock, EventGroup, Gap]


@dataclass(frozen=True, slots=True)
class DayTimeline:
    """Everything the renderer needs for one local day."""

    day_key: str
    window_start: int
    window_end: int
    is_today: bool
    manual: tuple[ManualItem, ...] = ()
    passive: tuple[PassiveItem, ...] = ()
    groups: tuple[EventGroup, ...] = ()

    @property
    def manual_intervals(self) -> list[Interval]:
        return [item for item in self.manual if isinstance(item, Interval)]

    @property
    def manual_gaps(self) -> list[Gap]:
        return [item for item in self.manual if isinstance(item, Gap)]

    @property
    def passive_blocks(self) -> list[MergedBlock]:
        return [item for item in self.passive if isinstance(item, MergedBlock)]

    @property
    def passive_gaps(self) -> list[Gap]:
        return [item for item in self.passive if isinstance(item, Gap)]

    @property
    def live_entry(self) -> Optional[Interval]:
        for item in self.manual_intervals:
            if item.is_live:
                return item
        return None

    def items(self) -> list[RenderItem]:
        """All render items of both tracks plus groups, ordered by start."""
        combined: list[RenderItem] = [*self.manual, *self.passive, *self.groups]
        return sorted(combined, key=_item_sort_key)


def _item_sort_key(item: RenderItem) -> tuple[int, int, int]:
    if isinstance(item, Interval):
        return item.start, 0, item.end
    if isinstance(item, MergedBlock):
        return item.start, 1, item.end
    if isinstance(item, EventGroup):
        return item.start, 2, item.end
    return item.start, 3, item.end


@dataclass(slots=True)
class _Prepared:
    manual_by_day: dict[date, list[Interval]]
    content_by_day: dict[date, list[Interval]]
    status_by_day: dict[date, list[Interval]]
    dropped: tuple[DroppedRecord, ...] = ()


@dataclass(slots=True)
class _DayStatic:
    window: DayWindow
    manual: tuple[Interval, ...]
    merged: tuple[MergedBlock, ...]
    groups: tuple[EventGroup, ...]
    presence: PresenceOverlay


@dataclass(slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0


def inputs_digest(
    markers: Sequence[RawManualMarker],
    events: Sequence[RawPassiveEvent],
    visibility: Mapping[str, bool],
    settings: TimelineSettings,
    today: date,
    tz: Optional[tzinfo],
) -> str:
    """Content hash of every input that does not change from tick to tick."""
    payload = {
        "markers": [
            [marker.activity, marker.timestamp, marker.classification_id] for marker in markers
        ],
        "events": [
            [
                event.source_id,
                event.source_classification,
                event.timestamp,
                event.duration_seconds,
                event.display_name,
                event.event_id,
                event.payload,
            ]
            for event in events
        ],
        "visibility": sorted(visibility.items()),
        "settings": list(settings.cache_token()),
        "today": today.isoformat(),
        "tz": repr(tz),
    }
    encoded = json.dumps(payload, sort_keys=True, default=repr).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class TimelineEngine:
    """Memoizing front door to the reconstruction pipeline."""

    def __init__(self, settings: Optional[TimelineSettings] = None, cache_size: int = 16) -> None:
        self.settings = settings or TimelineSettings()
        self.stats = CacheStats()
        self._cache_size = max(1, cache_size)
        self._prepared: OrderedDict[str, _Prepared] = OrderedDict()
        self._days: OrderedDict[tuple[str, date], _DayStatic] = OrderedDict()

    def clear(self) -> None:
        self._prepared.clear()
        self._days.clear()

    def build_day(
        self,
        markers: Sequence[RawManualMarker],
        events: Sequence[RawPassiveEvent],
        request: TimelineRequest,
        visibility: Optional[Mapping[str, bool]] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> DayTimeline:
        day = parse_day_key(request.day_key)
        digest, prepared = self._prepare(markers, events, visibility or {}, request.now, request.tz)
        if diagnostics is not None:
            diagnostics.dropped.extend(prepared.dropped)
        static = self._day_static(digest, prepared, day, request.tz)
        return _finalize(static, request, self.settings)

    def build_schedule(
        self,
        markers: Sequence[RawManualMarker],
        events: Sequence[RawPassiveEvent],
        start_key: str,
        end_key: str,
        now: int,
        *,
        tz: Optional[tzinfo] = None,
        show_manual: bool = True,
        show_passive: bool = True,
        visibility: Optional[Mapping[str, bool]] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> dict[str, DayTimeline]:
        """Day timelines for every day of an inclusive range, keyed by day key."""
        digest, prepared = self._prepare(markers, events, visibility or {}, now, tz)
        if diagnostics is not None:
            diagnostics.dropped.extend(prepared.dropped)
        schedule: dict[str, DayTimeline] = {}
        for day in iter_days(start_key, end_key):
            request = TimelineRequest(
                day_key=day.isoformat(),
                now=now,
                show_manual=show_manual,
                show_passive=show_passive,
                tz=tz,
            )
            static = self._day_static(digest, prepared, day, tz)
            schedule[request.day_key] = _finalize(static, request, self.settings)
        return schedule

    def _prepare(
        self,
        markers: Sequence[RawManualMarker],
        events: Sequence[RawPassiveEvent],
        visibility: Mapping[str, bool],
        now: int,
        tz: Optional[tzinfo],
    ) -> tuple[str, _Prepared]:
        today = day_of(now, tz)
        digest = inputs_digest(markers, events, visibility, self.settings, today, tz)
        cached = self._prepared.get(digest)
        if cached is not None:
            self.stats.hits += 1
            self._prepared.move_to_end(digest)
            logger.debug("Timeline cache hit %s", digest[:12])
            return digest, cached

        self.stats.misses += 1
        logger.debug("Timeline cache miss %s", digest[:12])
        prepared = prepare_records(markers, events, visibility, self.settings, today, tz)
        self._prepared[digest] = prepared
        if len(self._prepared) > self._cache_size:
            evicted, _ = self._prepared.popitem(last=False)
            for key in [key for key in self._days if key[0] == evicted]:
                del self._days[key]
        return digest, prepared

    def _day_static(
        self, digest: str, prepared: _Prepared, day: date, tz: Optional[tzinfo]
    ) -> _DayStatic:
        key = (digest, day)
        cached = self._days.get(key)
        if cached is not None:
            self._days.move_to_end(key)
            return cached
        static = assemble_day(prepared, day, self.settings, tz)
        self._days[key] = static
        if len(self._days) > self._cache_size * 8:
            self._days.popitem(last=False)
        return static


def prepare_records(
    markers: Iterable[RawManualMarker],
    events: Iterable[RawPassiveEvent],
    visibility: Mapping[str, bool],
    settings: TimelineSettings,
    today: date,
    tz: Optional[tzinfo] = None,
) -> _Prepared:
    """Normalize, infer and split every record, attributing segments to days."""
    diagnostics = Diagnostics()
    pending = normalize_markers(markers, diagnostics)
    manual = infer_manual_intervals(pending, today, tz)

    visible = filter_visible_events(events, visibility)
    passive = normalize_passive_events(visible, diagnostics, settings.status_classification)
    status = [item for item in passive if item.source_classification == settings.status_classification]
    content = merge_consecutive_duplicates(
        [item for item in passive if item.source_classification != settings.status_classification],
        settings.duplicate_tolerance_ms,
    )
    return _Prepared(
        manual_by_day=split_by_day(manual, tz),
        content_by_day=split_by_day(content, tz),
        status_by_day=split_by_day(status, tz),
        dropped=tuple(diagnostics.dropped),
    )


def assemble_day(
    prepared: _Prepared, day: date, settings: TimelineSettings, tz: Optional[tzinfo] = None
) -> _DayStatic:
    window = day_window(day, tz)
    presence = build_presence(prepared.status_by_day.get(day, []), window, settings.presence_ms)
    content = prepared.content_by_day.get(day, [])
    blocks = chunk_into_blocks(
        content, window, settings.block_ms, presence, settings.is_inactive_label
    )
    return _DayStatic(
        window=window,
        manual=tuple(prepared.manual_by_day.get(day, [])),
        merged=tuple(merge_blocks(blocks)),
        groups=tuple(group_events(content, settings.group_gap_ms)),
        presence=presence,
    )


def _finalize(static: _DayStatic, request: TimelineRequest, settings: TimelineSettings) -> DayTimeline:
    """Apply ``now``: stretch the live interval and fill gaps up to the window end."""
    window = static.window
    is_today = day_of(request.now, request.tz) == window.day
    window_end = window.clamp_end(request.now, is_today)

    manual: tuple[ManualItem, ...] = ()
    if request.show_manual:
        intervals = [with_live_end(item, request.now) for item in static.manual]
        gaps = detect_gaps(
            [(item.start, item.end) for item in intervals],
            window.start,
            window_end,
            settings.slot_ms,
            static.presence,
        )
        manual = tuple(sorted([*intervals, *gaps], key=_item_sort_key))

    passive: tuple[PassiveItem, ...] = ()
    groups: tuple[EventGroup, ...] = ()
    if request.show_passive:
        content = [
            _clip_block(block, window_end)
            for block in static.merged
            if not block.inactive_only and block.start < window_end
        ]
        gaps = detect_gaps(
            [(block.start, block.end) for block in content],
            window.start,
            window_end,
            settings.slot_ms,
            static.presence,
        )
        passive = tuple(sorted([*content, *gaps], key=_item_sort_key))
        groups = static.groups

    return DayTimeline(
        day_key=window.key,
        window_start=window.start,
        window_end=window_end,
        is_today=is_today,
        manual=manual,
        passive=passive,
        groups=groups,
    )


def _clip_block(block: MergedBlock, window_end: int) -> MergedBlock:
    if block.end <= window_end:
        return block
    return replace(block, end=window_end)


def build_day_timeline(
    markers: Sequence[RawManualMarker],
    events: Sequence[RawPassiveEvent],
    request: TimelineRequest,
    *,
    settings: Optional[TimelineSettings] = None,
    visibility: Optional[Mapping[str, bool]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> DayTimeline:
    """One-shot, uncached reconstruction of a single day."""
    engine = TimelineEngine(settings, cache_size=1)
    return engine.build_day(markers, events, request, visibility, diagnostics)


def build_schedule(
    markers: Sequence[RawManualMarker],
    events: Sequence[RawPassiveEvent],
    start_key: str,
    end_key: str,
    now: int,
    *,
    settings: Optional[TimelineSettings] = None,
    tz: Optional[tzinfo] = None,
    visibility: Optional[Mapping[str, bool]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> dict[str, DayTimeline]:
    engine = TimelineEngine(settings, cache_size=1)
    return engine.build_schedule(
        markers,
        events,
        start_key,
        end_key,
        now,
        tz=tz,
        visibility=visibility,
        diagnostics=diagnostics,
    )
