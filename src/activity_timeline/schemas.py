"""Record shapes handed over by the storage and import layers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .days import to_epoch_ms
from .models import RawManualMarker, RawPassiveEvent


class ManualMarkerRecord(BaseModel):
    """A stored manual marker (``{activity, date, goalId?}``)."""

    activity: str
    date: float
    goal_id: Optional[str] = Field(default=None, alias="goalId")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_raw(self) -> RawManualMarker:
        return RawManualMarker(
            activity=self.activity,
            timestamp=self.date,
            classification_id=self.goal_id or None,
        )


class PassiveEventRecord(BaseModel):
    """A parsed passive-tracker event; ``timestamp`` may be epoch ms or ISO-8601."""

    id: Optional[str] = None
    bucket_id: str = Field(alias="bucketId")
    bucket_type: str = Field(alias="bucketType")
    timestamp: Union[float, datetime]
    duration: float
    display_name: Optional[str] = Field(default=None, alias="displayName")
    event_data: Dict[str, Any] = Field(default_factory=dict, alias="eventData")
    color: Optional[str] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_raw(self) -> RawPassiveEvent:
        timestamp = (
            to_epoch_ms(self.timestamp) if isinstance(self.timestamp, datetime) else self.timestamp
        )
        return RawPassiveEvent(
            source_id=self.bucket_id,
            source_classification=self.bucket_type,
            timestamp=timestamp,
            duration_seconds=self.duration,
            payload=dict(self.event_data),
            display_name=self.display_name,
            event_id=self.id,
        )


class BucketRecord(BaseModel):
    id: str
    type: Optional[str] = None
    is_visible: bool = Field(default=True, alias="isVisible")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
