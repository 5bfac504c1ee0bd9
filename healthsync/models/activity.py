"""Pydantic models for daily activity-ring summaries."""

from __future__ import annotations

import datetime as dt

from pydantic import Field

from healthsync.models.base import SyncBase

RING_FIELDS: tuple[str, ...] = (
    "move_goal_kcal",
    "move_actual_kcal",
    "move_percent",
    "exercise_goal_minutes",
    "exercise_actual_minutes",
    "exercise_percent",
    "stand_goal_hours",
    "stand_actual_hours",
    "stand_percent",
)


class ActivitySummaryBase(SyncBase):
    """Three goal/actual/percent triples for one calendar date.

    Percent values are stored as the producer computed them
    (actual / goal * 100, or 0 for a zero goal) and may exceed 100.
    """

    date: dt.date
    move_goal_kcal: int = Field(ge=0)
    move_actual_kcal: int = Field(ge=0)
    move_percent: float = Field(ge=0)
    exercise_goal_minutes: int = Field(ge=0)
    exercise_actual_minutes: int = Field(ge=0)
    exercise_percent: float = Field(ge=0)
    stand_goal_hours: int = Field(ge=0)
    stand_actual_hours: int = Field(ge=0)
    stand_percent: float = Field(ge=0)


class ActivitySummaryIn(ActivitySummaryBase):
    pass


class ActivitySummaryRead(ActivitySummaryBase):
    pass


class ActivitySummaryResponse(SyncBase):
    success: bool = True
    activity_rings: ActivitySummaryRead


def ring_percent(actual: float, goal: float) -> float:
    """Percent of goal as the producer computes it: 0 when the goal is 0."""
    return (actual / goal) * 100 if goal > 0 else 0.0
