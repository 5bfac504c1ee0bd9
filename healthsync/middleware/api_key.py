"""Shared-secret API key middleware for FastAPI.

Every request except the public routes must carry the configured secret in
the ``X-API-Key`` header.  A missing header is 401; a wrong key is 403.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from healthsync.config import Settings, get_settings

logger = logging.getLogger("healthsync.auth")

API_KEY_HEADER = "X-API-Key"

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Reject requests that do not present the shared API key."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()
        self._expected = self._settings.api_key.encode("utf-8")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        provided = request.headers.get(API_KEY_HEADER)
        if not provided:
            return Response(
                content='{"detail":"Missing API key"}',
                status_code=401,
                media_type="application/json",
            )

        if not hmac.compare_digest(provided.encode("utf-8"), self._expected):
            logger.warning(
                "Rejected request with invalid API key: %s %s", request.method, request.url.path
            )
            return Response(
                content='{"detail":"Invalid API key"}',
                status_code=403,
                media_type="application/json",
            )

        return await call_next(request)
