"""Time-series reads of one health metric type."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from healthsync.dependencies import Owner, Store
from healthsync.models.metrics import MetricPoint, MetricSeriesResponse

router = APIRouter(prefix="/health-metrics", tags=["health-metrics"])


@router.get("/{metric_type}", response_model=MetricSeriesResponse)
async def get_metric_series(
    metric_type: str,
    owner: Owner,
    store: Store,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> Any:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    rows = await store.metrics_by_type(owner, metric_type, start_date, end_date)
    return MetricSeriesResponse(
        metric_type=metric_type,
        unit=rows[0]["unit"] if rows else "",
        data=[MetricPoint.model_validate(r) for r in rows],
    )
