"""Pydantic models for health metric samples (heart rate, step count, ...)."""

from __future__ import annotations

from datetime import datetime

from pydantic import AwareDatetime, Field, model_validator

from healthsync.models.base import MetadataValue, SyncBase


class HealthMetricIn(SyncBase):
    """One quantity sample.  The producer keeps one unit per metric type."""

    healthkit_uuid: str = Field(min_length=1, max_length=255)
    metric_type: str = Field(min_length=1, max_length=100)
    value: float
    unit: str = Field(min_length=1, max_length=50)
    start_date: AwareDatetime
    end_date: AwareDatetime
    source_name: str | None = Field(default=None, max_length=255)
    source_bundle_id: str | None = Field(default=None, max_length=255)
    device_name: str | None = Field(default=None, max_length=255)
    metadata: dict[str, MetadataValue] | None = None

    @model_validator(mode="after")
    def _check_interval(self) -> "HealthMetricIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MetricPoint(SyncBase):
    value: float
    start_date: datetime
    end_date: datetime
    source_name: str | None = None


class MetricSeriesResponse(SyncBase):
    success: bool = True
    metric_type: str
    unit: str
    data: list[MetricPoint]
