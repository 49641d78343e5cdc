"""FastAPI application that exposes the timeline engine as a local HTTP API."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import tzinfo
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import TimelineRequest, TimelineSettings
from .days import DAY_KEY_FMT, day_key_for, parse_day_key
from .diagnostics import Diagnostics
from .paths import get_snapshot_path
from .pipeline import TimelineEngine
from .reporting import goal_totals, summarize_activities
from .serialize import timeline_to_payload
from .snapshot import Snapshot, load_snapshot, snapshot_from_payload

logger = logging.getLogger(__name__)


class TimelinePayload(BaseModel):
    """Inline snapshot plus the day to reconstruct."""

    markers: List[Dict[str, Any]] = []
    events: List[Dict[str, Any]] = []
    buckets: List[Dict[str, Any]] = []
    date: Optional[str] = None
    now: Optional[int] = None
    show_manual: bool = True
    show_passive: bool = True

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    data_path: Optional[Path] = None,
    settings: Optional[TimelineSettings] = None,
    tz: Optional[tzinfo] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_data_path = Path(data_path or get_snapshot_path())
    engine = TimelineEngine(settings or TimelineSettings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("Serving timelines from %s", resolved_data_path)
        yield
        engine.clear()

    app = FastAPI(title="Activity Timeline", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.data_path = resolved_data_path
    app.state.engine = engine
    app.state.tz = tz

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current: TimelineEngine = request.app.state.engine
        return {
            "data_path": str(request.app.state.data_path),
            "data_exists": request.app.state.data_path.exists(),
            "block_minutes": current.settings.block_ms / 60000,
            "slot_minutes": current.settings.slot_ms / 60000,
            "group_gap_minutes": current.settings.group_gap_ms / 60000,
            "cache": {"hits": current.stats.hits, "misses": current.stats.misses},
        }

    @app.get("/api/timeline")
    def timeline(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format. Defaults to today.",
        ),
        show_manual: bool = Query(default=True),
        show_passive: bool = Query(default=True),
        now: Optional[int] = Query(
            default=None, description="Reference time in epoch milliseconds."
        ),
    ) -> Dict[str, Any]:
        reference = _resolve_now(now)
        diagnostics = Diagnostics()
        snapshot = _load(request.app.state.data_path, diagnostics)
        return _timeline_response(
            request.app.state.engine,
            snapshot,
            TimelineRequest(
                day_key=_parse_date(date, reference, tz),
                now=reference,
                show_manual=show_manual,
                show_passive=show_passive,
                tz=tz,
            ),
            diagnostics,
        )

    @app.post("/api/timeline")
    def timeline_from_payload(payload: TimelinePayload, request: Request) -> Dict[str, Any]:
        reference = _resolve_now(payload.now)
        diagnostics = Diagnostics()
        snapshot = snapshot_from_payload(
            payload.model_dump(include={"markers", "events", "buckets"}), diagnostics
        )
        return _timeline_response(
            request.app.state.engine,
            snapshot,
            TimelineRequest(
                day_key=_parse_date(payload.date, reference, tz),
                now=reference,
                show_manual=payload.show_manual,
                show_passive=payload.show_passive,
                tz=tz,
            ),
            diagnostics,
        )

    @app.get("/api/schedule")
    def schedule(
        request: Request,
        start: Optional[str] = Query(
            default=None,
            description="Start date in YYYY-MM-DD format (inclusive).",
        ),
        end: Optional[str] = Query(
            default=None,
            description="End date in YYYY-MM-DD format (inclusive).",
        ),
        now: Optional[int] = Query(
            default=None, description="Reference time in epoch milliseconds."
        ),
    ) -> Dict[str, Any]:
        reference = _resolve_now(now)
        start_key = _parse_date(start, reference, tz)
        end_key = _parse_date(end, reference, tz) if end else start_key
        if end_key < start_key:
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )

        diagnostics = Diagnostics()
        snapshot = _load(request.app.state.data_path, diagnostics)
        days = request.app.state.engine.build_schedule(
            snapshot.markers,
            snapshot.events,
            start_key,
            end_key,
            reference,
            tz=tz,
            visibility=snapshot.visibility,
            diagnostics=diagnostics,
        )
        goals = goal_totals(days)
        return {
            "start": start_key,
            "end": end_key,
            "days": {key: timeline_to_payload(value, tz) for key, value in days.items()},
            "goals": [
                {
                    "goal_id": goal.goal_id,
                    "total_minutes": goal.total_minutes,
                    "daily_minutes": {key: goal.minutes_on(key) for key in sorted(goal.daily)},
                }
                for goal in sorted(goals.values(), key=lambda item: item.total_seconds, reverse=True)
            ],
            "dropped": _dropped_payload(diagnostics),
        }

    return app


def _timeline_response(
    engine: TimelineEngine,
    snapshot: Snapshot,
    timeline_request: TimelineRequest,
    diagnostics: Diagnostics,
) -> Dict[str, Any]:
    result = engine.build_day(
        snapshot.markers,
        snapshot.events,
        timeline_request,
        visibility=snapshot.visibility,
        diagnostics=diagnostics,
    )
    payload = timeline_to_payload(result, timeline_request.tz)
    payload["summary"] = [
        {
            "activity": item.activity,
            "total_seconds": item.total_seconds,
            "percentage": item.percentage,
        }
        for item in summarize_activities(result)
    ]
    payload["dropped"] = _dropped_payload(diagnostics)
    return payload


def _load(data_path: Path, diagnostics: Diagnostics) -> Snapshot:
    try:
        return load_snapshot(data_path, diagnostics)
    except ValueError as exc:
        logger.error("Failed to load snapshot: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _dropped_payload(diagnostics: Diagnostics) -> List[Dict[str, str]]:
    return [
        {"kind": item.kind, "ref": item.ref, "reason": item.reason}
        for item in diagnostics.dropped
    ]


def _resolve_now(value: Optional[int]) -> int:
    return value if value is not None else int(time.time() * 1000)


def _parse_date(value: Optional[str], now: int, tz: Optional[tzinfo]) -> str:
    if not value:
        return day_key_for(now, tz)
    try:
        return parse_day_key(value).strftime(DAY_KEY_FMT)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
