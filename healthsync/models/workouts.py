"""Pydantic models for workouts and their GPS routes."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import AwareDatetime, Field, model_validator

from healthsync.models.base import MetadataValue, SyncBase


# ---------- Wire format (producer → server) ----------

class RoutePoint(SyncBase):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    timestamp: AwareDatetime
    altitude: float | None = None
    speed: float | None = Field(default=None, ge=0)
    horizontal_accuracy: float | None = Field(default=None, ge=0)


class WorkoutRouteIn(SyncBase):
    # An empty list is accepted and means "no route".
    points: list[RoutePoint] = Field(default_factory=list)


class WorkoutIn(SyncBase):
    """One workout as submitted by the producer.

    ``duration_seconds`` is derived from the timestamps when omitted.
    """

    healthkit_uuid: str = Field(min_length=1, max_length=255)
    workout_type: str = Field(min_length=1, max_length=100)
    start_date: AwareDatetime
    end_date: AwareDatetime
    duration_seconds: int | None = Field(default=None, ge=0)
    total_distance_meters: float | None = Field(default=None, ge=0)
    total_energy_burned_kcal: float | None = Field(default=None, ge=0)
    avg_heart_rate_bpm: int | None = Field(default=None, ge=20, le=250)
    max_heart_rate_bpm: int | None = Field(default=None, ge=20, le=250)
    source_name: str | None = Field(default=None, max_length=255)
    source_bundle_id: str | None = Field(default=None, max_length=255)
    device_name: str | None = Field(default=None, max_length=255)
    metadata: dict[str, MetadataValue] | None = None
    route: WorkoutRouteIn | None = None

    @model_validator(mode="after")
    def _check_interval(self) -> "WorkoutIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.duration_seconds is None:
            self.duration_seconds = int((self.end_date - self.start_date).total_seconds())
        return self


# ---------- Read models (server → dashboard) ----------

class WorkoutSummary(SyncBase):
    id: uuid.UUID
    workout_type: str
    start_date: datetime
    end_date: datetime
    duration_seconds: int
    total_distance_meters: float | None = None
    total_energy_burned_kcal: float | None = None
    avg_heart_rate_bpm: int | None = None
    max_heart_rate_bpm: int | None = None
    has_route: bool = False


class WorkoutDetail(SyncBase):
    id: uuid.UUID
    healthkit_uuid: str
    workout_type: str
    start_date: datetime
    end_date: datetime
    duration_seconds: int
    total_distance_meters: float | None = None
    total_energy_burned_kcal: float | None = None
    avg_heart_rate_bpm: int | None = None
    max_heart_rate_bpm: int | None = None
    source_name: str | None = None
    device_name: str | None = None
    metadata: dict[str, MetadataValue] | None = None
    created_at: datetime


class RouteBoundsRead(SyncBase):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


class WorkoutRouteRead(SyncBase):
    workout_id: uuid.UUID
    total_points: int
    points: list[RoutePoint]
    bounds: RouteBoundsRead


class WorkoutDetailResponse(SyncBase):
    success: bool = True
    workout: WorkoutDetail


class WorkoutRouteResponse(SyncBase):
    success: bool = True
    route: WorkoutRouteRead
