"""Request and response envelopes for the /sync endpoints.

Batch envelopes validate only their structure (owner present, a non-empty
list).  Individual records stay untyped here and are validated one at a time
by the ingestion service, so one malformed record cannot reject its siblings.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field

from healthsync.models.base import SyncBase

_OWNER_ALIASES = AliasChoices("owner", "user_id")


class SyncStatus(str, enum.Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def http_status(self) -> int:
        return {"success": 200, "partial": 207, "failed": 500}[self.value]


# ---------- Requests ----------

class WorkoutBatchRequest(SyncBase):
    owner: uuid.UUID = Field(validation_alias=_OWNER_ALIASES)
    workouts: list[Any] = Field(min_length=1)


class MetricBatchRequest(SyncBase):
    owner: uuid.UUID = Field(validation_alias=_OWNER_ALIASES)
    metrics: list[Any] = Field(min_length=1)


class ActivitySummaryBatchRequest(SyncBase):
    owner: uuid.UUID = Field(validation_alias=_OWNER_ALIASES)
    activity_rings: list[Any] = Field(min_length=1)


class AnchorUpsert(SyncBase):
    model_config = ConfigDict(str_strip_whitespace=False)

    owner: uuid.UUID = Field(validation_alias=_OWNER_ALIASES)
    data_type: str = Field(min_length=1, max_length=100)
    anchor_data: str = Field(min_length=1)


# ---------- Responses ----------

class SyncRecordError(SyncBase):
    """One failed record, keyed by whichever identifier the family uses."""

    healthkit_uuid: str | None = None
    date: str | None = None
    error: str


class SyncResponse(SyncBase):
    """Uniform envelope for every batch endpoint.

    ``skipped`` is reported by the append-only families (workouts, metrics)
    and ``updated`` by the mutable ones (activity rings, anchors); the field
    that does not apply is left as None and omitted from the JSON body.
    """

    success: bool
    status: SyncStatus
    synced: int = 0
    skipped: int | None = None
    updated: int | None = None
    errors: list[SyncRecordError] = Field(default_factory=list)


class AnchorRead(SyncBase):
    model_config = ConfigDict(str_strip_whitespace=False)

    data_type: str
    anchor_data: str
    last_sync_at: datetime


class AnchorResponse(SyncBase):
    success: bool = True
    anchor: AnchorRead
