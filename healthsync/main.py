"""healthsync API: FastAPI application entry point.

Run locally:
    uvicorn healthsync.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthsync.config import Settings, configure_logging, get_settings
from healthsync.middleware.api_key import ApiKeyMiddleware
from healthsync.routers import (
    activity_rings,
    dashboard,
    health,
    health_metrics,
    owners,
    sync,
    workouts,
)
from healthsync.services.database import (
    StorageUnavailableError,
    apply_schema,
    close_pool,
    init_pool,
)
from healthsync.store.records import RecordStore

logger = logging.getLogger("healthsync")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting %s API v%s [%s]",
        settings.app_name,
        settings.app_version,
        settings.environment,
    )
    pool = await init_pool(settings)
    if settings.apply_schema_on_startup:
        await apply_schema(pool)
    await RecordStore(pool).ensure_owner(uuid.UUID(settings.default_owner_id))
    yield
    await close_pool()
    logger.info("%s API shut down", settings.app_name)


# ---------- Exception handlers ----------

async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    logger.error("Storage unavailable during %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


# ---------- App factory ----------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="healthsync API",
        description=(
            "Incremental, idempotent sync of workouts, GPS routes, health metric "
            "samples and daily activity rings."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ---------- Middleware (outermost last) ----------

    app.add_middleware(ApiKeyMiddleware, settings=settings)

    # CORS is added last so it wraps auth and answers preflight itself
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StorageUnavailableError, storage_unavailable_handler)

    # ---------- Routes ----------

    app.include_router(health.router)
    app.include_router(sync.router)
    app.include_router(dashboard.router)
    app.include_router(workouts.router)
    app.include_router(activity_rings.router)
    app.include_router(health_metrics.router)
    app.include_router(owners.router)

    return app


app = create_app()
