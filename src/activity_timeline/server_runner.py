"""Start-up for the local timeline API."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from datetime import tzinfo
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .config import TimelineSettings
from .diagnostics import Diagnostics
from .paths import get_snapshot_path, resolve_snapshot_path
from .snapshot import load_snapshot
from .webapp import create_app

logger = logging.getLogger(__name__)

_WILDCARD_HOSTS = {"0.0.0.0", "::", ""}


def prepare_data_path(data_path: Optional[Path] = None) -> Path:
    """Resolve the snapshot to serve and check it before the server binds.

    A missing snapshot is fine: its directory is created so the storage layer
    can export into it, and every day renders as gaps until it does. A snapshot
    that exists but cannot be read raises ``ValueError``.
    """
    path = resolve_snapshot_path(Path(data_path)) if data_path else get_snapshot_path()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.warning("No snapshot at %s yet; timelines will be empty", path)
        return path

    diagnostics = Diagnostics()
    snapshot = load_snapshot(path, diagnostics)
    logger.info(
        "Snapshot %s holds %d markers and %d tracker events",
        path,
        len(snapshot.markers),
        len(snapshot.events),
    )
    if diagnostics:
        logger.warning("%d malformed record(s) in %s will be skipped", len(diagnostics), path)
    return path


def build_server_app(
    data_path: Path,
    settings: Optional[TimelineSettings] = None,
    tz: Optional[tzinfo] = None,
) -> FastAPI:
    settings = settings or TimelineSettings()
    logger.info(
        "Blocks of %g min, gap slots of %g min, days in %s",
        settings.block_ms / 60000,
        settings.slot_ms / 60000,
        tz or "the local zone",
    )
    return create_app(data_path=data_path, settings=settings, tz=tz)


def browser_url(host: str, port: int) -> str:
    """Today's timeline endpoint, reachable even when bound to all interfaces."""
    if host in _WILDCARD_HOSTS:
        host = "127.0.0.1"
    elif ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}/api/timeline"


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    data_path: Optional[Path] = None,
    settings: Optional[TimelineSettings] = None,
    tz: Optional[tzinfo] = None,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Serve the timeline API until interrupted.

    ``data_path`` should already have been through ``prepare_data_path``.
    """
    app = build_server_app(data_path or prepare_data_path(), settings, tz)

    if open_browser:
        threading.Thread(
            target=_launch_browser_after_delay, args=(browser_url(host, port),), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logger.exception("Failed to launch browser for %s", url)
