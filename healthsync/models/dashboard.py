"""Read models for the dashboard endpoint."""

from __future__ import annotations

from pydantic import Field

from healthsync.models.activity import ActivitySummaryRead
from healthsync.models.base import SyncBase
from healthsync.models.workouts import WorkoutSummary


class DashboardSummary(SyncBase):
    total_workouts: int = 0
    total_distance_km: float = 0.0
    total_calories: float = 0.0
    avg_workout_duration_minutes: float = 0.0


class DashboardResponse(SyncBase):
    success: bool = True
    workouts: list[WorkoutSummary] = Field(default_factory=list)
    activity_rings: list[ActivitySummaryRead] = Field(default_factory=list)
    summary: DashboardSummary = Field(default_factory=DashboardSummary)
