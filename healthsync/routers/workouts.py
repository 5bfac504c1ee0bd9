"""Workout detail and GPS route endpoints."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException

from healthsync.dependencies import Store
from healthsync.models.workouts import (
    WorkoutDetail,
    WorkoutDetailResponse,
    WorkoutRouteRead,
    WorkoutRouteResponse,
)

router = APIRouter(prefix="/workout", tags=["workouts"])


@router.get("/{workout_id}", response_model=WorkoutDetailResponse)
async def get_workout(workout_id: uuid.UUID, store: Store) -> Any:
    row = await store.get_workout(workout_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    return WorkoutDetailResponse(workout=WorkoutDetail.model_validate(row))


@router.get("/{workout_id}/route", response_model=WorkoutRouteResponse)
async def get_workout_route(workout_id: uuid.UUID, store: Store) -> Any:
    route = await store.get_workout_route(workout_id)
    if route is None:
        raise HTTPException(status_code=404, detail="No GPS data for this workout")
    return WorkoutRouteResponse(route=WorkoutRouteRead.model_validate(route))
