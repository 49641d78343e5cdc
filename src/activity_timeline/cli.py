"""Command-line interface for the activity timeline."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional

import typer

from .config import TimelineRequest, TimelineSettings
from .days import DAY_KEY_FMT, day_key_for, parse_day_key, to_epoch_ms
from .diagnostics import Diagnostics
from .paths import get_snapshot_path, resolve_snapshot_path
from .pipeline import TimelineEngine
from .server_runner import prepare_data_path, run_server
from .snapshot import Snapshot, load_snapshot

app = typer.Typer(help="Reconstruct day timelines from activity markers and tracker events.")

DATA_HELP = "Location of the JSON snapshot exported by the storage layer."


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _zone(utc: bool) -> Optional[tzinfo]:
    return timezone.utc if utc else None


def _resolve_now(value: Optional[str], tz: Optional[tzinfo]) -> int:
    if not value:
        return to_epoch_ms(datetime.now(tz))
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid timestamp {value!r}", param_hint="--now") from exc
    if parsed.tzinfo is None and tz is not None:
        parsed = parsed.replace(tzinfo=tz)
    return to_epoch_ms(parsed)


def _resolve_day(value: Optional[str], now: int, tz: Optional[tzinfo], hint: str) -> str:
    if not value:
        return day_key_for(now, tz)
    try:
        return parse_day_key(value).strftime(DAY_KEY_FMT)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=hint) from exc


def _load(data_path: Optional[Path]) -> Snapshot:
    diagnostics = Diagnostics()
    try:
        path = resolve_snapshot_path(data_path) if data_path else get_snapshot_path()
        snapshot = load_snapshot(path, diagnostics)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--data") from exc
    if diagnostics:
        typer.echo(f"Skipped {len(diagnostics)} malformed record(s).", err=True)
    return snapshot


def _settings(block_minutes: float, slot_minutes: float, group_gap_minutes: Optional[float]) -> TimelineSettings:
    try:
        return TimelineSettings.from_minutes(
            block_minutes=block_minutes,
            group_gap_minutes=group_gap_minutes,
            slot_minutes=slot_minutes,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def day(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to show. Defaults to today.",
    ),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
    now: Optional[str] = typer.Option(
        None, "--now", help="Reference time (ISO-8601). Defaults to the current time."
    ),
    show_manual: bool = typer.Option(True, "--manual/--no-manual", help="Show manual activities."),
    show_passive: bool = typer.Option(
        True, "--passive/--no-passive", help="Show tracked activity blocks."
    ),
    block_minutes: float = typer.Option(30.0, "--block-minutes", min=1.0, help="Block width."),
    slot_minutes: float = typer.Option(15.0, "--slot-minutes", min=1.0, help="Gap slot size."),
    group_gap_minutes: Optional[float] = typer.Option(
        None,
        "--group-gap-minutes",
        min=0.0,
        help="Maximum gap between grouped events (defaults to the block width).",
    ),
    utc: bool = typer.Option(False, "--utc", help="Use UTC days instead of the local zone."),
) -> None:
    """Print the reconstructed timeline for one day."""
    from .reporting import SummaryPrinter

    tz = _zone(utc)
    reference = _resolve_now(now, tz)
    request = TimelineRequest(
        day_key=_resolve_day(date, reference, tz, "--date"),
        now=reference,
        show_manual=show_manual,
        show_passive=show_passive,
        tz=tz,
    )
    engine = TimelineEngine(_settings(block_minutes, slot_minutes, group_gap_minutes))
    SummaryPrinter(_load(data_path), engine=engine, tz=tz).print_day(request)


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
    now: Optional[str] = typer.Option(
        None, "--now", help="Reference time (ISO-8601). Defaults to the current time."
    ),
    utc: bool = typer.Option(False, "--utc", help="Use UTC days instead of the local zone."),
) -> None:
    """Print a high-level summary for a specific day."""
    from .reporting import SummaryPrinter

    tz = _zone(utc)
    reference = _resolve_now(now, tz)
    request = TimelineRequest(
        day_key=_resolve_day(date, reference, tz, "--date"), now=reference, tz=tz
    )
    SummaryPrinter(_load(data_path), tz=tz).print_daily_summary(request)


@app.command()
def schedule(
    start: str = typer.Option(..., "--start", help="First day (YYYY-MM-DD), inclusive."),
    end: Optional[str] = typer.Option(
        None, "--end", help="Last day (YYYY-MM-DD), inclusive. Defaults to the start day."
    ),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
    now: Optional[str] = typer.Option(
        None, "--now", help="Reference time (ISO-8601). Defaults to the current time."
    ),
    utc: bool = typer.Option(False, "--utc", help="Use UTC days instead of the local zone."),
) -> None:
    """Print time per goal for each day of a range."""
    from .reporting import SummaryPrinter

    tz = _zone(utc)
    reference = _resolve_now(now, tz)
    start_key = _resolve_day(start, reference, tz, "--start")
    end_key = _resolve_day(end, reference, tz, "--end") if end else start_key
    if end_key < start_key:
        raise typer.BadParameter("end date must be on or after start date", param_hint="--end")
    SummaryPrinter(_load(data_path), tz=tz).print_goal_totals(start_key, end_key, reference)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(8765, "--port", min=1, max=65535, help="TCP port for the API."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
    block_minutes: float = typer.Option(30.0, "--block-minutes", min=1.0, help="Block width."),
    slot_minutes: float = typer.Option(15.0, "--slot-minutes", min=1.0, help="Gap slot size."),
    group_gap_minutes: Optional[float] = typer.Option(
        None,
        "--group-gap-minutes",
        min=0.0,
        help="Maximum gap between grouped events (defaults to the block width).",
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically open the API docs in your default browser.",
    ),
    utc: bool = typer.Option(False, "--utc", help="Use UTC days instead of the local zone."),
) -> None:
    """Serve the timeline API locally."""
    try:
        prepared = prepare_data_path(data_path)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--data") from exc
    run_server(
        host=host,
        port=port,
        data_path=prepared,
        settings=_settings(block_minutes, slot_minutes, group_gap_minutes),
        tz=_zone(utc),
        open_browser=open_browser,
    )
