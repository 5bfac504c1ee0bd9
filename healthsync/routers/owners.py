"""Owner lifecycle: cascading deletion of everything an owner has synced."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException

from healthsync.dependencies import Store

router = APIRouter(prefix="/owners", tags=["owners"])


@router.delete("/{owner}", status_code=204)
async def delete_owner(owner: uuid.UUID, store: Store) -> None:
    if not await store.delete_owner(owner):
        raise HTTPException(status_code=404, detail="Owner not found")
