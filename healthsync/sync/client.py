"""Producer-side HTTP client for the healthsync /sync API.

Batch submissions return a ``SubmitResult`` for every response the server
classifies itself (200 success, 207 partial, 500 failed with an envelope).
Anything else, including transport errors, raises ``IngestionError``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from healthsync.models.sync import AnchorResponse, SyncRecordError, SyncResponse, SyncStatus

logger = logging.getLogger("healthsync.sync.client")

_BATCH_STATUSES = {200, 207, 500}


class IngestionError(RuntimeError):
    """Raised when a request could not be delivered or was rejected outright."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SubmitResult:
    """Server verdict on one submitted batch."""

    status: SyncStatus
    http_status: int
    synced: int = 0
    skipped: int = 0
    updated: int = 0
    errors: list[SyncRecordError] = field(default_factory=list)

    @property
    def advances_anchor(self) -> bool:
        return self.status in (SyncStatus.SUCCESS, SyncStatus.PARTIAL)


class IngestionClient:
    """Async client for the ingestion endpoints.

    Usage::

        async with IngestionClient("http://localhost:8000", api_key) as client:
            if await client.health_check():
                result = await client.submit_workouts(owner, records)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url:    Server root, e.g. ``http://localhost:8000``.
            api_key:     Shared secret sent as ``X-API-Key``.
            timeout:     Per-request timeout in seconds.
            http_client: Optional pre-configured httpx client (for testing).
        """
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"X-API-Key": api_key},
            timeout=timeout,
        )

    async def __aenter__(self) -> "IngestionClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------- Liveness ----------

    async def health_check(self) -> bool:
        """Return True when the server reports itself fully healthy."""
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError as exc:
            logger.warning("Health check failed: %s", exc)
            return False
        if response.status_code != 200:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and body.get("status") == "ok"

    # ---------- Batches ----------

    async def submit_workouts(
        self, owner: uuid.UUID, records: Sequence[dict]
    ) -> SubmitResult:
        return await self._submit("/sync/workouts", owner, "workouts", records)

    async def submit_metrics(
        self, owner: uuid.UUID, records: Sequence[dict]
    ) -> SubmitResult:
        return await self._submit("/sync/health-metrics", owner, "metrics", records)

    async def submit_activity_summaries(
        self, owner: uuid.UUID, records: Sequence[dict]
    ) -> SubmitResult:
        return await self._submit("/sync/activity-rings", owner, "activity_rings", records)

    async def _submit(
        self, path: str, owner: uuid.UUID, field_name: str, records: Sequence[dict]
    ) -> SubmitResult:
        body = {"owner": str(owner), field_name: list(records)}
        response = await self._request("POST", path, json=body)
        if response.status_code not in _BATCH_STATUSES:
            raise IngestionError(
                f"POST {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            envelope = SyncResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise IngestionError(
                f"POST {path} returned an unreadable body ({response.status_code})",
                status_code=response.status_code,
            ) from exc

        return SubmitResult(
            status=envelope.status,
            http_status=response.status_code,
            synced=envelope.synced,
            skipped=envelope.skipped or 0,
            updated=envelope.updated or 0,
            errors=envelope.errors,
        )

    # ---------- Anchors ----------

    async def get_anchor(self, owner: uuid.UUID, data_type: str) -> str | None:
        """Return the stored anchor payload, or None when the server has none."""
        path = f"/sync/anchors/{owner}/{data_type}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise IngestionError(
                f"GET {path} returned {response.status_code}", status_code=response.status_code
            )
        try:
            return AnchorResponse.model_validate(response.json()).anchor.anchor_data
        except (ValueError, ValidationError) as exc:
            raise IngestionError(f"GET {path} returned an unreadable body") from exc

    async def put_anchor(self, owner: uuid.UUID, data_type: str, payload: str) -> None:
        body = {"owner": str(owner), "data_type": data_type, "anchor_data": payload}
        response = await self._request("POST", "/sync/anchors", json=body)
        if response.status_code != 200:
            raise IngestionError(
                f"POST /sync/anchors returned {response.status_code}",
                status_code=response.status_code,
            )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise IngestionError(f"{method} {path} failed: {exc}") from exc
