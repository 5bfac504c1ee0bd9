"""Ingestion endpoints: batch uploads and sync anchors."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from healthsync.dependencies import Anchors, Ingestion
from healthsync.models.sync import (
    ActivitySummaryBatchRequest,
    AnchorRead,
    AnchorResponse,
    AnchorUpsert,
    MetricBatchRequest,
    SyncResponse,
    WorkoutBatchRequest,
)
from healthsync.sync.ingestion import BatchResult

router = APIRouter(prefix="/sync", tags=["sync"])

_BATCH_RESPONSES: dict[int | str, dict[str, Any]] = {
    207: {"model": SyncResponse, "description": "Some records failed"},
    500: {"model": SyncResponse, "description": "Every record failed"},
}


def _envelope(result: BatchResult) -> JSONResponse:
    return JSONResponse(
        status_code=result.http_status,
        content=result.to_response().model_dump(mode="json", exclude_none=True),
    )


# ---------- Batches ----------

@router.post("/workouts", response_model=SyncResponse, responses=_BATCH_RESPONSES)
async def sync_workouts(body: WorkoutBatchRequest, ingestion: Ingestion) -> JSONResponse:
    result = await ingestion.ingest_workouts(body.owner, body.workouts)
    return _envelope(result)


@router.post("/health-metrics", response_model=SyncResponse, responses=_BATCH_RESPONSES)
async def sync_health_metrics(body: MetricBatchRequest, ingestion: Ingestion) -> JSONResponse:
    result = await ingestion.ingest_metrics(body.owner, body.metrics)
    return _envelope(result)


@router.post("/activity-rings", response_model=SyncResponse, responses=_BATCH_RESPONSES)
async def sync_activity_rings(
    body: ActivitySummaryBatchRequest, ingestion: Ingestion
) -> JSONResponse:
    result = await ingestion.ingest_activity_summaries(body.owner, body.activity_rings)
    return _envelope(result)


# ---------- Anchors ----------

@router.post("/anchors", response_model=SyncResponse)
async def put_anchor(body: AnchorUpsert, ingestion: Ingestion) -> JSONResponse:
    result = await ingestion.record_anchor(body.owner, body.data_type, body.anchor_data)
    return _envelope(result)


@router.get("/anchors/{owner}/{data_type}", response_model=AnchorResponse)
async def get_anchor(owner: uuid.UUID, data_type: str, anchors: Anchors) -> Any:
    stored = await anchors.get_anchor(owner, data_type)
    if stored is None:
        raise HTTPException(status_code=404, detail="No anchor found")
    return AnchorResponse(
        anchor=AnchorRead(
            data_type=stored.data_type,
            anchor_data=stored.anchor_data,
            last_sync_at=stored.last_sync_at,
        )
    )
