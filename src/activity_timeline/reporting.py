"""Summaries over reconstructed timelines and their console rendering."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Iterable, Mapping, Optional

from .config import TimelineRequest
from .days import to_datetime
from .models import Gap, Interval, MergedBlock
from .pipeline import DayTimeline, TimelineEngine
from .snapshot import Snapshot

DAY_SECONDS = 24 * 60 * 60
UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True, slots=True)
class ActivitySummary:
    activity: str
    total_seconds: float
    percentage: float
    first_start: int


@dataclass(slots=True)
class GoalTotals:
    goal_id: str
    total_seconds: float = 0.0
    daily: dict[str, float] = field(default_factory=dict)

    @property
    def total_minutes(self) -> int:
        return int(self.total_seconds // 60)

    def minutes_on(self, day_key: str) -> int:
        return int(self.daily.get(day_key, 0.0) // 60)


def summarize_activities(timeline: DayTimeline) -> list[ActivitySummary]:
    """Per-activity totals for the manual track, as a share of a full day."""
    totals: defaultdict[str, float] = defaultdict(float)
    first_start: dict[str, int] = {}
    for interval in timeline.manual_intervals:
        totals[interval.classification] += interval.duration_seconds
        first_start.setdefault(interval.classification, interval.start)
    summaries = [
        ActivitySummary(
            activity=activity,
            total_seconds=seconds,
            percentage=min(seconds / DAY_SECONDS * 100.0, 100.0),
            first_start=first_start[activity],
        )
        for activity, seconds in totals.items()
    ]
    summaries.sort(key=lambda item: item.first_start)
    return summaries


def aggregate_by_classification(blocks: Iterable[MergedBlock]) -> list[tuple[str, float]]:
    totals: defaultdict[str, float] = defaultdict(float)
    for block in blocks:
        for label, seconds in block.breakdown():
            totals[label] += seconds
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def goal_totals(schedule: Mapping[str, DayTimeline]) -> dict[str, GoalTotals]:
    """Manual time per goal per day; markers without a goal are uncategorized."""
    result: dict[str, GoalTotals] = {}
    for day_key, timeline in schedule.items():
        for interval in timeline.manual_intervals:
            goal_id = interval.classification_id or UNCATEGORIZED
            totals = result.setdefault(goal_id, GoalTotals(goal_id=goal_id))
            totals.total_seconds += interval.duration_seconds
            totals.daily[day_key] = totals.daily.get(day_key, 0.0) + interval.duration_seconds
    return result


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class SummaryPrinter:
    """Render human-readable timelines and summaries in the console."""

    def __init__(
        self,
        snapshot: Snapshot,
        engine: Optional[TimelineEngine] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.snapshot = snapshot
        self.engine = engine or TimelineEngine()
        self.tz = tz

    def _build(self, request: TimelineRequest) -> DayTimeline:
        return self.engine.build_day(
            self.snapshot.markers,
            self.snapshot.events,
            request,
            visibility=self.snapshot.visibility,
        )

    def _clock(self, timestamp: int) -> str:
        return to_datetime(timestamp, self.tz).strftime("%H:%M")

    def print_day(self, request: TimelineRequest) -> None:
        timeline = self._build(request)
        print(f"Timeline for {timeline.day_key}{' (today)' if timeline.is_today else ''}")
        print("-" * 40)
        if request.show_manual:
            print("Manual activities:")
            self._print_track(timeline.manual)
        if request.show_passive:
            if request.show_manual:
                print()
            print("Tracked activity:")
            self._print_track(timeline.passive)
            if timeline.groups:
                print()
                print("Recurring events:")
                for group in timeline.groups:
                    print(
                        f"  {self._clock(group.start)}-{self._clock(group.end)} "
                        f"{group.classification[:40]:<40} x{len(group)} "
                        f"{format_duration(group.total_duration_seconds)}"
                    )

    def _print_track(self, items: Iterable[object]) -> None:
        pending_gap: Optional[tuple[int, int]] = None
        for item in items:
            if isinstance(item, Gap):
                start = pending_gap[0] if pending_gap else item.start
                pending_gap = (start, item.end)
                continue
            if pending_gap:
                self._print_gap(*pending_gap)
                pending_gap = None
            if isinstance(item, Interval):
                flags = " (live)" if item.is_live else ""
                flags += " (continued)" if item.is_continuation else ""
                print(
                    f"  {self._clock(item.start)}-{self._clock(item.end)} "
                    f"{item.classification[:40]:<40} {format_duration(item.duration_seconds)}{flags}"
                )
            elif isinstance(item, MergedBlock):
                print(
                    f"  {self._clock(item.start)}-{self._clock(item.end)} "
                    f"{item.dominant[:40]:<40} {format_duration(item.total_duration_seconds)}"
                )
        if pending_gap:
            self._print_gap(*pending_gap)

    def _print_gap(self, start: int, end: int) -> None:
        print(f"  {self._clock(start)}-{self._clock(end)} {'(empty)':<40} {format_duration((end - start) / 1000)}")

    def print_daily_summary(self, request: TimelineRequest) -> None:
        timeline = self._build(request)
        summaries = summarize_activities(timeline)
        blocks = timeline.passive_blocks
        if not summaries and not blocks:
            print("No activity recorded for the selected day.")
            return

        print(f"Summary for {timeline.day_key}")
        print("-" * 40)
        tracked = sum(item.total_seconds for item in summaries)
        print(f"Logged time: {format_duration(tracked)}")
        print()
        if summaries:
            print("Activities:")
            for item in summaries:
                print(
                    f"  {item.activity[:30]:<30} {format_duration(item.total_seconds)} "
                    f"{item.percentage:5.1f}%"
                )

        top_classifications = aggregate_by_classification(blocks)
        if top_classifications:
            print()
            print("Top tracked activities:")
            for label, seconds in top_classifications[:5]:
                print(f"  {label[:30]:<30} {format_duration(seconds)}")

    def print_goal_totals(self, start_key: str, end_key: str, now: int) -> None:
        schedule = self.engine.build_schedule(
            self.snapshot.markers,
            self.snapshot.events,
            start_key,
            end_key,
            now,
            tz=self.tz,
            show_passive=False,
            visibility=self.snapshot.visibility,
        )
        totals = goal_totals(schedule)
        if not totals:
            print("No manual activity in the selected range.")
            return
        print(f"Goal time {start_key} .. {end_key}")
        print("-" * 40)
        for goal in sorted(totals.values(), key=lambda item: item.total_seconds, reverse=True):
            print(f"  {goal.goal_id[:30]:<30} {format_duration(goal.total_seconds)}")
            for day_key in sorted(goal.daily):
                print(f"    {day_key} {format_duration(goal.daily[day_key])}")
