"""Daily activity-ring lookup."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException

from healthsync.dependencies import Owner, Store
from healthsync.models.activity import ActivitySummaryRead, ActivitySummaryResponse

router = APIRouter(prefix="/activity-rings", tags=["activity"])


@router.get("/{day}", response_model=ActivitySummaryResponse)
async def get_activity_rings(day: date, owner: Owner, store: Store) -> Any:
    row = await store.get_activity_summary(owner, day)
    if row is None:
        raise HTTPException(status_code=404, detail="No activity data for this date")
    return ActivitySummaryResponse(activity_rings=ActivitySummaryRead.model_validate(row))
