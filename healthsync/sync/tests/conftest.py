"""Shared fixtures for sync ingestion and orchestrator tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthsync.models.sync import SyncRecordError, SyncStatus
from healthsync.store.tests.conftest import FakeAnchorTracker, FakeRecordStore
from healthsync.sync.anchors import MemoryAnchorStore
from healthsync.sync.client import SubmitResult
from healthsync.sync.config_loader import SyncPlan
from healthsync.sync.ingestion import IngestionService
from healthsync.sync.source import HealthDataSource, SourceBatch, SourceQueryError

NOW = datetime(2025, 1, 20, 8, 0, tzinfo=timezone.utc)
HEART_RATE = "HKQuantityTypeIdentifierHeartRate"
STEPS = "HKQuantityTypeIdentifierStepCount"


class FakeSource(HealthDataSource):
    """Scriptable source: per-data-type batches, errors and call log."""

    name = "fake"

    def __init__(self) -> None:
        self.batches: dict[str, SourceBatch] = {}
        self.failing: set[str] = set()
        self.crashing: dict[str, Exception] = {}
        self.calls: list[tuple] = []

    def _answer(self, data_type: str) -> SourceBatch:
        if data_type in self.crashing:
            raise self.crashing[data_type]
        if data_type in self.failing:
            raise SourceQueryError(f"{data_type} query failed")
        return self.batches.get(data_type, SourceBatch())

    async def fetch_workouts(self, since, anchor):
        self.calls.append(("workouts", since, anchor))
        return self._answer("workouts")

    async def fetch_metrics(self, metric_type, unit, since, anchor):
        self.calls.append((metric_type, since, anchor))
        return self._answer(metric_type)

    async def fetch_activity_summaries(self, since: date):
        self.calls.append(("activity_summaries", since, None))
        return self._answer("activity_summaries")


def submit_result(status: SyncStatus = SyncStatus.SUCCESS, synced: int = 1, errors: int = 0) -> SubmitResult:
    return SubmitResult(
        status=status,
        http_status=status.http_status,
        synced=synced,
        errors=[SyncRecordError(healthkit_uuid=f"E-{i}", error="bad") for i in range(errors)],
    )


@pytest.fixture
def plan() -> SyncPlan:
    return SyncPlan(
        default_lookback_days=7,
        historical_import_days=365,
        activity_window_days=7,
        poll_interval_seconds=3600,
        metric_types={HEART_RATE: "count/min", STEPS: "count"},
    )


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def client() -> MagicMock:
    """IngestionClient double: healthy server, every submission succeeds."""
    c = MagicMock()
    c.health_check = AsyncMock(return_value=True)
    c.submit_workouts = AsyncMock(return_value=submit_result())
    c.submit_metrics = AsyncMock(return_value=submit_result())
    c.submit_activity_summaries = AsyncMock(return_value=submit_result())
    return c


@pytest.fixture
def anchor_store() -> MemoryAnchorStore:
    return MemoryAnchorStore()


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def fake_anchors() -> FakeAnchorTracker:
    return FakeAnchorTracker()


@pytest.fixture
def ingestion(fake_store: FakeRecordStore, fake_anchors: FakeAnchorTracker) -> IngestionService:
    return IngestionService(fake_store, fake_anchors)
