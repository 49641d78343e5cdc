"""Reporting channel for records dropped during reconstruction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """A single raw record cannot be turned into an interval."""


@dataclass(frozen=True, slots=True)
class DroppedRecord:
    kind: str
    ref: str
    reason: str


@dataclass(slots=True)
class Diagnostics:
    """Collects per-record problems; never raises."""

    dropped: list[DroppedRecord] = field(default_factory=list)

    def drop(self, kind: str, ref: str, reason: str) -> None:
        self.dropped.append(DroppedRecord(kind=kind, ref=ref, reason=reason))

    def __len__(self) -> int:
        return len(self.dropped)


def report_dropped(
    diagnostics: Optional[Diagnostics], kind: str, ref: str, reason: str
) -> None:
    logger.warning("Dropped %s record %s: %s", kind, ref, reason)
    if diagnostics is not None:
        diagnostics.drop(kind, ref, reason)
