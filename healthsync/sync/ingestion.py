"""Batch ingestion: per-record validation, storage and outcome classification.

A batch is processed record by record.  Each record is validated with its
wire model and stored in its own transaction; a failure is recorded against
that record's identifier and processing continues with the next one.

Outcome classification for a batch::

    no record failed      -> SUCCESS  (HTTP 200)
    some records failed   -> PARTIAL  (HTTP 207)
    every record failed   -> FAILED   (HTTP 500)

Duplicates of append-only records count as ``skipped``, never as failures.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

import asyncpg
from pydantic import BaseModel, ValidationError

from healthsync.models.activity import ActivitySummaryIn
from healthsync.models.metrics import HealthMetricIn
from healthsync.models.sync import SyncRecordError, SyncResponse, SyncStatus
from healthsync.models.workouts import WorkoutIn
from healthsync.services.database import StorageUnavailableError
from healthsync.store.anchors import AnchorTracker
from healthsync.store.records import InsertOutcome, RecordStore

logger = logging.getLogger("healthsync.sync.ingestion")


@dataclass
class BatchResult:
    """Counters and per-record errors for one ingested batch.

    Attributes:
        total:       Number of records submitted.
        synced:      Records newly created.
        skipped:     Duplicates (append-only families), None otherwise.
        updated:     Replaced records (mutable families), None otherwise.
        errors:      One entry per failed record.
    """

    total: int
    synced: int = 0
    skipped: int | None = None
    updated: int | None = None
    errors: list[SyncRecordError] = field(default_factory=list)

    @property
    def status(self) -> SyncStatus:
        if not self.errors:
            return SyncStatus.SUCCESS
        if len(self.errors) >= self.total:
            return SyncStatus.FAILED
        return SyncStatus.PARTIAL

    @property
    def http_status(self) -> int:
        return self.status.http_status

    def to_response(self) -> SyncResponse:
        return SyncResponse(
            success=self.status is not SyncStatus.FAILED,
            status=self.status,
            synced=self.synced,
            skipped=self.skipped,
            updated=self.updated,
            errors=self.errors,
        )


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def _raw_key(raw: Any, key: str) -> str | None:
    if isinstance(raw, dict):
        value = raw.get(key)
        return str(value) if value is not None else None
    return None


class IngestionService:
    """Validates and stores producer batches against the record store."""

    def __init__(self, store: RecordStore, anchors: AnchorTracker | None = None) -> None:
        self._store = store
        self._anchors = anchors

    async def ingest_workouts(self, owner: uuid.UUID, records: Sequence[Any]) -> BatchResult:
        result = await self._ingest(
            owner, records, WorkoutIn, self._store.insert_workout,
            key_field="healthkit_uuid", append_only=True,
        )
        logger.info(
            "Workouts for %s: %d synced, %d skipped, %d failed",
            owner, result.synced, result.skipped, len(result.errors),
        )
        return result

    async def ingest_metrics(self, owner: uuid.UUID, records: Sequence[Any]) -> BatchResult:
        result = await self._ingest(
            owner, records, HealthMetricIn, self._store.insert_metric,
            key_field="healthkit_uuid", append_only=True,
        )
        logger.info(
            "Health metrics for %s: %d synced, %d skipped, %d failed",
            owner, result.synced, result.skipped, len(result.errors),
        )
        return result

    async def ingest_activity_summaries(
        self, owner: uuid.UUID, records: Sequence[Any]
    ) -> BatchResult:
        result = await self._ingest(
            owner,
            records,
            ActivitySummaryIn,
            self._store.upsert_activity_summary,
            key_field="date",
            append_only=False,
        )
        logger.info(
            "Activity summaries for %s: %d synced, %d updated, %d failed",
            owner, result.synced, result.updated, len(result.errors),
        )
        return result

    async def record_anchor(self, owner: uuid.UUID, data_type: str, payload: str) -> BatchResult:
        """Persist a sync anchor.  Storage failures propagate to the caller."""
        if self._anchors is None:
            raise RuntimeError("IngestionService was built without an AnchorTracker")
        write = await self._anchors.put_anchor(owner, data_type, payload)
        result = BatchResult(total=1, updated=0)
        if write.created:
            result.synced = 1
        else:
            result.updated = 1
        return result

    # ---------- Internals ----------

    async def _ingest(
        self,
        owner: uuid.UUID,
        records: Sequence[Any],
        model: type[BaseModel],
        store_fn: Callable[[uuid.UUID, Any], Awaitable[InsertOutcome]],
        key_field: str,
        append_only: bool,
    ) -> BatchResult:
        """Store ``records`` one by one.

        Append-only families report duplicates as ``skipped``; mutable
        families report replacements as ``updated``.
        """
        result = BatchResult(
            total=len(records),
            skipped=0 if append_only else None,
            updated=None if append_only else 0,
        )

        for raw in records:
            key = _raw_key(raw, key_field)
            try:
                record = model.model_validate(raw)
                outcome = await store_fn(owner, record)
            except ValidationError as exc:
                message = describe_validation_error(exc)
            except StorageUnavailableError as exc:
                message = f"Storage unavailable: {exc}"
            except asyncpg.PostgresError as exc:
                message = f"Database error: {exc}"
            except Exception as exc:  # isolate one bad record from its siblings
                logger.exception("Unexpected error storing %s=%s", key_field, key)
                message = f"Unexpected error: {exc}"
            else:
                if outcome is InsertOutcome.CREATED:
                    result.synced += 1
                elif outcome is InsertOutcome.DUPLICATE:
                    result.skipped = (result.skipped or 0) + 1
                    logger.debug("Skipped duplicate %s=%s", key_field, key)
                else:
                    result.updated = (result.updated or 0) + 1
                continue

            logger.warning("Failed to store %s=%s: %s", key_field, key, message)
            result.errors.append(SyncRecordError(**{key_field: key, "error": message}))

        return result
