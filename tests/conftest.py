"""Shared fixtures: a fixed UTC zone and small record builders."""

from datetime import datetime, timezone

import pytest

from activity_timeline.config import TimelineSettings
from activity_timeline.days import to_epoch_ms
from activity_timeline.models import Interval, RawManualMarker, RawPassiveEvent, SourceKind
from activity_timeline.pipeline import TimelineEngine


@pytest.fixture
def tz():
    return timezone.utc


@pytest.fixture
def at():
    """Epoch ms for a wall-clock time on a UTC day key."""

    def _at(day_key, hour=0, minute=0, second=0):
        moment = datetime.strptime(day_key, "%Y-%m-%d").replace(
            hour=hour, minute=minute, second=second, tzinfo=timezone.utc
        )
        return to_epoch_ms(moment)

    return _at


@pytest.fixture
def settings():
    return TimelineSettings()


@pytest.fixture
def engine(settings):
    return TimelineEngine(settings)


@pytest.fixture
def marker():
    def _marker(activity, timestamp, goal_id=None):
        return RawManualMarker(activity=activity, timestamp=timestamp, classification_id=goal_id)

    return _marker


@pytest.fixture
def window_event():
    """A content-stream event from the window watcher."""

    def _event(start, seconds, title, bucket="aw-watcher-window", event_id=None):
        return RawPassiveEvent(
            source_id=bucket,
            source_classification="currentwindow",
            timestamp=start,
            duration_seconds=seconds,
            display_name=title,
            event_id=event_id,
        )

    return _event


@pytest.fixture
def status_event():
    """A presence-stream event; ``status`` is "afk" or "not-afk"."""

    def _event(start, seconds, status):
        return RawPassiveEvent(
            source_id="aw-watcher-afk",
            source_classification="afkstatus",
            timestamp=start,
            duration_seconds=seconds,
            payload={"status": status},
        )

    return _event


@pytest.fixture
def interval():
    def _interval(start, end, label="Editor", kind=SourceKind.PASSIVE, ref=None, source="src"):
        return Interval(
            start=start,
            end=end,
            classification=label,
            source_kind=kind,
            origin_ref=ref or f"{label}-{start}",
            source_id=source,
        )

    return _interval
