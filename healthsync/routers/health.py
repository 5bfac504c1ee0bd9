"""Health check endpoint (public, no auth required)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from healthsync.config import get_settings
from healthsync.services.database import connection, get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("healthsync.health")


@router.get("/health")
async def health_check() -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    ``status`` is "ok" only when the database also answers a trivial query;
    the sync agent refuses to start a run otherwise.
    """
    settings = get_settings()
    db_ok = False
    try:
        async with connection(get_pool()) as conn:
            await conn.fetchval("SELECT 1")
        db_ok = True
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "ok" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
