"""Tests for activity_timeline.presence: the status overlay."""

import pytest

from activity_timeline.days import day_window
from activity_timeline.models import Interval, Presence, SourceKind
from activity_timeline.presence import build_presence

DAY = "2024-03-04"
MINUTE = 60_000
PROBE = 15 * MINUTE


@pytest.fixture
def window(tz):
    return day_window(DAY, tz)


def _status(start, end, label):
    return Interval(
        start=start,
        end=end,
        classification=label,
        source_kind=SourceKind.PASSIVE,
        origin_ref=f"status-{start}",
    )


class TestProbeStates:
    def test_no_data_is_unknown(self, at, window):
        overlay = build_presence([], window, PROBE)
        assert not overlay.has_data
        assert overlay.presence_for(at(DAY, 9), at(DAY, 10)) is Presence.UNKNOWN
        assert not overlay.is_inactive_only(at(DAY, 9), at(DAY, 10))

    def test_any_active_overlap_wins(self, at, window):
        overlay = build_presence(
            [
                _status(at(DAY, 9), at(DAY, 9, 14), "inactive"),
                _status(at(DAY, 9, 14), at(DAY, 9, 15), "active"),
            ],
            window,
            PROBE,
        )
        probe = overlay.probes()[0]
        assert probe.state is Presence.ACTIVE
        assert not probe.majority_active
        assert overlay.state_at(at(DAY, 9, 3)) is Presence.ACTIVE

    def test_inactive_only(self, at, window):
        overlay = build_presence([_status(at(DAY, 9), at(DAY, 10), "inactive")], window, PROBE)
        assert [probe.state for probe in overlay.probes()] == [Presence.INACTIVE] * 4
        assert overlay.is_inactive_only(at(DAY, 9), at(DAY, 10))
        assert overlay.presence_for(at(DAY, 9, 20), at(DAY, 9, 40)) is Presence.INACTIVE

    def test_partly_unknown_span_is_not_inactive_only(self, at, window):
        overlay = build_presence([_status(at(DAY, 9), at(DAY, 9, 15), "inactive")], window, PROBE)
        assert not overlay.is_inactive_only(at(DAY, 9), at(DAY, 9, 30))
        assert overlay.presence_for(at(DAY, 9), at(DAY, 9, 30)) is Presence.UNKNOWN

    def test_outside_window_is_unknown(self, at, window):
        overlay = build_presence([_status(at(DAY, 9), at(DAY, 10), "active")], window, PROBE)
        assert overlay.state_at(window.end) is Presence.UNKNOWN
        assert overlay.state_at(window.start - 1) is Presence.UNKNOWN

    def test_status_clipped_to_day(self, at, window):
        overlay = build_presence(
            [_status(window.start - 30 * MINUTE, window.start + 5 * MINUTE, "active")],
            window,
            PROBE,
        )
        probes = overlay.probes()
        assert len(probes) == 1
        assert probes[0].active_ms == 5 * MINUTE
