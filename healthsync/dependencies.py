"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, Query

from healthsync.config import Settings, get_settings
from healthsync.services.database import get_pool
from healthsync.store.anchors import AnchorTracker
from healthsync.store.records import RecordStore
from healthsync.sync.ingestion import IngestionService


def get_record_store() -> RecordStore:
    return RecordStore(get_pool())


def get_anchor_tracker() -> AnchorTracker:
    return AnchorTracker(get_pool())


def get_ingestion_service(
    store: Annotated[RecordStore, Depends(get_record_store)],
    anchors: Annotated[AnchorTracker, Depends(get_anchor_tracker)],
) -> IngestionService:
    return IngestionService(store, anchors)


def resolve_owner(
    settings: Annotated[Settings, Depends(get_settings)],
    owner: uuid.UUID | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None, include_in_schema=False),
) -> uuid.UUID:
    """Owner for read endpoints: ``owner`` (or legacy ``user_id``) or the single-tenant default."""
    chosen = owner or user_id
    if chosen is not None:
        return chosen
    try:
        return uuid.UUID(settings.default_owner_id)
    except ValueError:
        raise HTTPException(status_code=500, detail="default_owner_id is not a valid UUID") from None


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
Store = Annotated[RecordStore, Depends(get_record_store)]
Anchors = Annotated[AnchorTracker, Depends(get_anchor_tracker)]
Ingestion = Annotated[IngestionService, Depends(get_ingestion_service)]
Owner = Annotated[uuid.UUID, Depends(resolve_owner)]
