"""Server-side persistence of per-(owner, data type) sync anchors.

The anchor payload is opaque: the producer serializes its own cursor and
this module only stores and returns it byte-for-byte.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

import asyncpg

from healthsync.services.database import connection, transaction
from healthsync.store.upserts import INSERTED_FLAG, build_upsert_query

logger = logging.getLogger("healthsync.store.anchors")

_UPSERT_ANCHOR = build_upsert_query(
    "sync_anchors",
    ["user_id", "data_type", "anchor_data"],
    ["user_id", "data_type"],
    update_columns=["anchor_data"],
    touch_column="last_sync_at",
    returning=f"last_sync_at, {INSERTED_FLAG}",
)


@dataclass(frozen=True)
class StoredAnchor:
    data_type: str
    anchor_data: str
    last_sync_at: datetime


@dataclass(frozen=True)
class AnchorWrite:
    """Result of ``put_anchor``: whether a new row was created or replaced."""

    created: bool
    last_sync_at: datetime


class AnchorTracker:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get_anchor(self, owner: uuid.UUID, data_type: str) -> StoredAnchor | None:
        """Return the stored anchor, or None when no sync has completed yet."""
        async with connection(self._pool) as conn:
            row = await conn.fetchrow(
                """
                SELECT data_type, anchor_data, last_sync_at
                FROM sync_anchors WHERE user_id = $1 AND data_type = $2
                """,
                owner,
                data_type,
            )
        if row is None:
            return None
        return StoredAnchor(
            data_type=row["data_type"],
            anchor_data=row["anchor_data"],
            last_sync_at=row["last_sync_at"],
        )

    async def put_anchor(self, owner: uuid.UUID, data_type: str, payload: str) -> AnchorWrite:
        """Atomically create or replace the anchor for ``(owner, data_type)``."""
        async with transaction(self._pool) as conn:
            row = await conn.fetchrow(_UPSERT_ANCHOR, owner, data_type, payload)
        logger.debug(
            "Anchor %s for %s/%s", "created" if row["inserted"] else "replaced", owner, data_type
        )
        return AnchorWrite(created=row["inserted"], last_sync_at=row["last_sync_at"])
