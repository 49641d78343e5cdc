"""Tests for activity_timeline.inference: manual marker durations."""

from datetime import date

import pytest

from activity_timeline.inference import infer_manual_intervals, sort_markers, with_live_end
from activity_timeline.models import PendingMarker

DAY = "2024-03-04"
NEXT_DAY = "2024-03-05"
PAST_TODAY = date(2024, 3, 10)
MINUTE = 60_000


@pytest.fixture
def pending():
    def _pending(activity, start, sequence):
        return PendingMarker(
            start=start, activity=activity, sequence=sequence, origin_ref=f"manual-{sequence}"
        )

    return _pending


class TestPastDay:
    def test_email_then_meeting(self, at, tz, pending):
        intervals = infer_manual_intervals(
            [pending("Email", at(DAY, 9), 0), pending("Meeting", at(DAY, 9, 40), 1)],
            PAST_TODAY,
            tz,
        )
        email, meeting = intervals
        assert (email.start, email.end) == (at(DAY, 9), at(DAY, 9, 40))
        assert email.duration_ms == 40 * MINUTE
        assert (meeting.start, meeting.end) == (at(DAY, 9, 40), at(NEXT_DAY, 0))
        assert not email.is_live and not meeting.is_live

    def test_unsorted_input(self, at, tz, pending):
        intervals = infer_manual_intervals(
            [pending("Meeting", at(DAY, 9, 40), 0), pending("Email", at(DAY, 9), 1)],
            PAST_TODAY,
            tz,
        )
        assert [item.classification for item in intervals] == ["Email", "Meeting"]
        assert intervals[0].end == at(DAY, 9, 40)

    def test_successor_on_next_day(self, at, tz, pending):
        intervals = infer_manual_intervals(
            [pending("Reading", at(DAY, 22), 0), pending("Breakfast", at(NEXT_DAY, 8), 1)],
            PAST_TODAY,
            tz,
        )
        assert intervals[0].end == at(NEXT_DAY, 8)

    def test_empty(self, tz):
        assert infer_manual_intervals([], PAST_TODAY, tz) == []


class TestLive:
    def test_last_marker_today_is_live(self, at, tz, pending):
        today = date(2024, 3, 4)
        intervals = infer_manual_intervals(
            [pending("Writing", at(DAY, 14), 0)], today, tz, now=at(DAY, 14, 15)
        )
        writing = intervals[0]
        assert writing.is_live
        assert (writing.start, writing.end) == (at(DAY, 14), at(DAY, 14, 15))
        assert writing.duration_ms == 15 * MINUTE

    def test_restretching_keeps_origin(self, at, tz, pending):
        today = date(2024, 3, 4)
        placeholder = infer_manual_intervals([pending("Writing", at(DAY, 14), 0)], today, tz)[0]
        assert placeholder.duration_ms == 0
        first = with_live_end(placeholder, at(DAY, 14, 15))
        second = with_live_end(placeholder, at(DAY, 14, 20))
        assert second.duration_ms == 20 * MINUTE
        assert first.origin_ref == second.origin_ref

    def test_clock_skew_is_zero_not_negative(self, at, tz, pending):
        today = date(2024, 3, 4)
        writing = infer_manual_intervals(
            [pending("Writing", at(DAY, 14), 0)], today, tz, now=at(DAY, 13, 55)
        )[0]
        assert writing.end == writing.start
        assert writing.duration_ms == 0

    def test_future_dated_marker_is_live(self, at, tz, pending):
        today = date(2024, 3, 4)
        intervals = infer_manual_intervals([pending("Trip", at(NEXT_DAY, 9), 0)], today, tz)
        assert intervals[0].is_live

    def test_non_live_unchanged(self, at, interval):
        closed = interval(at(DAY, 9), at(DAY, 10))
        assert with_live_end(closed, at(DAY, 12)) is closed


class TestTieBreak:
    def test_identical_timestamps_follow_authoring_order(self, at, tz, pending):
        same = at(DAY, 9)
        intervals = infer_manual_intervals(
            [pending("First", same, 0), pending("Second", same, 1), pending("Third", at(DAY, 10), 2)],
            PAST_TODAY,
            tz,
        )
        assert [item.classification for item in intervals] == ["First", "Second", "Third"]
        assert intervals[0].duration_ms == 0
        assert (intervals[1].start, intervals[1].end) == (same, at(DAY, 10))

    def test_sort_is_deterministic(self, at, pending):
        same = at(DAY, 9)
        markers = [pending("B", same, 1), pending("A", same, 0)]
        assert [item.activity for item in sort_markers(markers)] == ["A", "B"]
        assert sort_markers(markers) == sort_markers(list(reversed(markers)))
