"""Tests for activity_timeline.reporting: summaries and console output."""

import pytest

from activity_timeline.config import TimelineRequest
from activity_timeline.pipeline import build_day_timeline, build_schedule
from activity_timeline.reporting import (
    SummaryPrinter,
    aggregate_by_classification,
    format_duration,
    goal_totals,
    summarize_activities,
)
from activity_timeline.snapshot import Snapshot

DAY = "2024-03-04"
NEXT_DAY = "2024-03-05"


@pytest.fixture
def now(at):
    return at("2024-03-10", 12)


@pytest.fixture
def markers(at, marker):
    return [
        marker("Email", at(DAY, 9), "goal-mail"),
        marker("Meeting", at(DAY, 10)),
        marker("Email", at(DAY, 11), "goal-mail"),
        marker("Sleep", at(DAY, 12)),
    ]


class TestFormatDuration:
    def test_hours_minutes_seconds(self):
        assert format_duration(3661) == "01:01:01"

    def test_rounds(self):
        assert format_duration(59.6) == "00:01:00"


class TestSummaries:
    def test_activities_sorted_by_first_start(self, tz, now, markers):
        timeline = build_day_timeline(markers, [], TimelineRequest(DAY, now=now, tz=tz))
        summaries = summarize_activities(timeline)
        assert [item.activity for item in summaries] == ["Email", "Meeting", "Sleep"]
        email = summaries[0]
        assert email.total_seconds == 2 * 3600
        assert email.percentage == pytest.approx(2 / 24 * 100)
        assert summaries[2].total_seconds == 12 * 3600

    def test_goal_totals_per_day(self, at, tz, now, markers):
        schedule = build_schedule(markers, [], DAY, NEXT_DAY, now, tz=tz)
        totals = goal_totals(schedule)
        assert set(totals) == {"goal-mail", "uncategorized"}
        assert totals["goal-mail"].total_minutes == 120
        assert totals["goal-mail"].minutes_on(DAY) == 120
        assert totals["goal-mail"].minutes_on(NEXT_DAY) == 0
        assert totals["uncategorized"].total_minutes == 60 + 12 * 60

    def test_classification_totals(self, at, tz, now, window_event):
        events = [
            window_event(at(DAY, 9), 600, "Editor"),
            window_event(at(DAY, 9, 10), 300, "Mail"),
            window_event(at(DAY, 14), 900, "Editor"),
        ]
        timeline = build_day_timeline([], events, TimelineRequest(DAY, now=now, tz=tz))
        assert aggregate_by_classification(timeline.passive_blocks) == [
            ("Editor", 1500.0),
            ("Mail", 300.0),
        ]


class TestSummaryPrinter:
    def test_print_day(self, capsys, tz, now, markers):
        printer = SummaryPrinter(Snapshot(markers=markers), tz=tz)
        printer.print_day(TimelineRequest(DAY, now=now, tz=tz))
        output = capsys.readouterr().out
        assert f"Timeline for {DAY}" in output
        assert "09:00-10:00 Email" in output
        assert "(empty)" in output

    def test_print_daily_summary_empty(self, capsys, tz, now):
        SummaryPrinter(Snapshot(), tz=tz).print_daily_summary(TimelineRequest(DAY, now=now, tz=tz))
        assert "No activity recorded" in capsys.readouterr().out

    def test_print_goal_totals(self, capsys, tz, now, markers):
        SummaryPrinter(Snapshot(markers=markers), tz=tz).print_goal_totals(DAY, DAY, now)
        output = capsys.readouterr().out
        assert "goal-mail" in output
        assert "02:00:00" in output
