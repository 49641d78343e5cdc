"""Load the records exported by the storage layer.

A snapshot is a JSON document ``{"markers": [...], "events": [...],
"buckets": [...]}``. Records that fail validation are dropped one by one and
reported; a missing file is an empty snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .diagnostics import Diagnostics, report_dropped
from .models import RawManualMarker, RawPassiveEvent
from .schemas import BucketRecord, ManualMarkerRecord, PassiveEventRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(slots=True)
class Snapshot:
    markers: list[RawManualMarker] = field(default_factory=list)
    events: list[RawPassiveEvent] = field(default_factory=list)
    buckets: list[BucketRecord] = field(default_factory=list)

    @property
    def visibility(self) -> dict[str, bool]:
        return {bucket.id: bucket.is_visible for bucket in self.buckets}


def _parse_records(
    items: Any,
    model: Type[RecordT],
    kind: str,
    diagnostics: Optional[Diagnostics],
) -> list[RecordT]:
    if items is None:
        return []
    if not isinstance(items, list):
        report_dropped(diagnostics, kind, "*", f"expected a list, got {type(items).__name__}")
        return []
    parsed: list[RecordT] = []
    for index, item in enumerate(items):
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            report_dropped(diagnostics, kind, f"{kind}#{index}", f"{exc.error_count()} validation error(s)")
    return parsed


def snapshot_from_payload(
    payload: Mapping[str, Any], diagnostics: Optional[Diagnostics] = None
) -> Snapshot:
    markers = _parse_records(payload.get("markers"), ManualMarkerRecord, "manual", diagnostics)
    events = _parse_records(payload.get("events"), PassiveEventRecord, "passive", diagnostics)
    buckets = _parse_records(payload.get("buckets"), BucketRecord, "bucket", diagnostics)
    return Snapshot(
        markers=[record.to_raw() for record in markers],
        events=[record.to_raw() for record in events],
        buckets=buckets,
    )


def load_snapshot(path: Path, diagnostics: Optional[Diagnostics] = None) -> Snapshot:
    """Read a snapshot file; raises ``ValueError`` when it is not a JSON object."""
    path = Path(path)
    if not path.exists():
        logger.info("No snapshot at %s; starting empty.", path)
        return Snapshot()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Snapshot {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Snapshot {path} must contain a JSON object")
    snapshot = snapshot_from_payload(payload, diagnostics)
    logger.debug(
        "Loaded %d markers, %d events, %d buckets from %s",
        len(snapshot.markers),
        len(snapshot.events),
        len(snapshot.buckets),
        path,
    )
    return snapshot
