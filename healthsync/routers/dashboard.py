"""Dashboard read endpoint: recent workouts, rings and summary counters."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from healthsync.dependencies import Owner, Store
from healthsync.models.dashboard import DashboardResponse, DashboardSummary

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/recent", response_model=DashboardResponse)
async def recent(
    owner: Owner,
    store: Store,
    days: int = Query(default=7, ge=1, le=90),
) -> Any:
    """Workouts and activity rings from the last ``days`` days.

    An empty window is a normal result: empty lists and zero counters.
    """
    workouts = await store.recent_workouts(owner, days)
    rings = await store.recent_activity_rings(owner, days)
    stats = await store.summary_stats(owner, days)
    return DashboardResponse(
        workouts=workouts,
        activity_rings=rings,
        summary=DashboardSummary(**stats),
    )
