"""Where the timeline snapshot lives by default."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "ActivityTimeline"
SNAPSHOT_NAME = "timeline.json"
DATA_ENV_VAR = "ACTIVITY_TIMELINE_DATA"


def get_data_dir() -> Path:
    """Per-user data directory. Not created here; readers only need the path."""
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False, roaming=True).user_data_path)


def get_snapshot_path() -> Path:
    """Snapshot exported by the storage layer.

    ``ACTIVITY_TIMELINE_DATA`` overrides the default and may name either the
    file itself or a directory holding ``timeline.json``.
    """
    override = os.environ.get(DATA_ENV_VAR)
    if override:
        return resolve_snapshot_path(Path(override))
    return get_data_dir() / SNAPSHOT_NAME


def resolve_snapshot_path(path: Path) -> Path:
    path = path.expanduser()
    if path.is_dir():
        return path / SNAPSHOT_NAME
    return path
