"""Tests for activity_timeline.gaps: empty slot detection."""

import pytest

from activity_timeline.days import day_window
from activity_timeline.gaps import detect_gaps, free_ranges
from activity_timeline.models import Interval, Presence, SourceKind
from activity_timeline.presence import build_presence

DAY = "2024-03-04"
MINUTE = 60_000
SLOT = 15 * MINUTE


@pytest.fixture
def window(tz):
    return day_window(DAY, tz)


def _assert_covers(placed, gaps, start, end):
    spans = sorted([*placed, *((gap.start, gap.end) for gap in gaps)])
    cursor = start
    for span_start, span_end in spans:
        assert span_start == cursor
        cursor = span_end
    assert cursor == end


class TestDetectGaps:
    def test_empty_past_day_has_96_slots(self, window):
        gaps = detect_gaps([], window.start, window.end, SLOT)
        assert len(gaps) == 96
        assert all(gap.duration_ms == SLOT for gap in gaps)
        _assert_covers([], gaps, window.start, window.end)

    def test_today_clamped_at_now(self, at, window):
        now = at(DAY, 10, 7)
        gaps = detect_gaps([], window.start, now, SLOT)
        assert len(gaps) == 41
        assert (gaps[-1].start, gaps[-1].end) == (at(DAY, 9, 52), now)
        assert (gaps[0].start, gaps[0].end) == (window.start, at(DAY, 0, 7))
        _assert_covers([], gaps, window.start, now)

    def test_slots_hang_off_next_interval(self, at, window):
        placed = [(at(DAY, 9, 10), at(DAY, 9, 50))]
        gaps = detect_gaps(placed, window.start, window.end, SLOT)
        spans = {(gap.start, gap.end) for gap in gaps}
        assert (at(DAY, 8, 55), at(DAY, 9, 10)) in spans
        assert (window.start, at(DAY, 0, 10)) in spans
        assert (at(DAY, 9, 50), at(DAY, 10)) in spans
        assert (at(DAY, 23, 45), window.end) in spans
        assert all(gap.duration_ms <= SLOT for gap in gaps)
        assert not any(gap.start < at(DAY, 9, 50) and gap.end > at(DAY, 9, 10) for gap in gaps)
        _assert_covers(placed, gaps, window.start, window.end)

    def test_ascending_order(self, at, window):
        gaps = detect_gaps([(at(DAY, 12), at(DAY, 13))], window.start, window.end, SLOT)
        assert [gap.start for gap in gaps] == sorted(gap.start for gap in gaps)

    def test_fully_covered_day_has_no_gaps(self, window):
        assert detect_gaps([(window.start, window.end)], window.start, window.end, SLOT) == []

    def test_rejects_non_positive_slot(self, window):
        with pytest.raises(ValueError, match="slot_ms"):
            detect_gaps([], window.start, window.end, 0)

    def test_presence_attached(self, at, window):
        status = Interval(
            start=window.start,
            end=at(DAY, 0, 15),
            classification="inactive",
            source_kind=SourceKind.PASSIVE,
            origin_ref="afk",
        )
        overlay = build_presence([status], window, SLOT)
        gaps = detect_gaps([], window.start, window.end, SLOT, overlay)
        assert gaps[0].presence is Presence.INACTIVE
        assert gaps[1].presence is Presence.UNKNOWN


class TestFreeRanges:
    def test_overlapping_placed_merge(self, at, window):
        ranges = free_ranges(
            [(at(DAY, 9), at(DAY, 10)), (at(DAY, 9, 30), at(DAY, 11))], window.start, window.end
        )
        assert ranges == [(window.start, at(DAY, 9)), (at(DAY, 11), window.end)]

    def test_placed_outside_window_ignored(self, window):
        assert free_ranges([(window.start - 10, window.start)], window.start, window.end) == [
            (window.start, window.end)
        ]
