"""Shared fixtures and in-memory fakes for record store tests.

``FakeRecordStore`` and ``FakeAnchorTracker`` mirror the dedup and upsert
semantics that the UNIQUE constraints give the real store, so service and
router tests can run without PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthsync.models.activity import ActivitySummaryIn
from healthsync.models.metrics import HealthMetricIn
from healthsync.models.workouts import WorkoutIn
from healthsync.services.database import StorageUnavailableError
from healthsync.store.anchors import AnchorWrite, StoredAnchor
from healthsync.store.geo import compute_bounds
from healthsync.store.records import InsertOutcome

# Canonical test owner
TEST_OWNER = uuid.UUID("12345678-1234-5678-1234-567812345678")
OTHER_OWNER = uuid.UUID("87654321-4321-8765-4321-876543218765")
T0 = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# asyncpg pool mocks
# ---------------------------------------------------------------------------


class AsyncCM:
    """Minimal async context manager yielding a fixed value."""

    def __init__(self, value=None, raises: BaseException | None = None) -> None:
        self.value = value
        self.raises = raises

    async def __aenter__(self):
        if self.raises is not None:
            raise self.raises
        return self.value

    async def __aexit__(self, *exc_info) -> bool:
        return False


@pytest.fixture
def conn() -> MagicMock:
    c = MagicMock()
    c.fetchval = AsyncMock(return_value=None)
    c.fetchrow = AsyncMock(return_value=None)
    c.fetch = AsyncMock(return_value=[])
    c.execute = AsyncMock(return_value="OK")
    c.transaction = MagicMock(return_value=AsyncCM())
    return c


@pytest.fixture
def pool(conn: MagicMock) -> MagicMock:
    p = MagicMock()
    p.acquire = MagicMock(return_value=AsyncCM(conn))
    return p


# ---------------------------------------------------------------------------
# Wire record builders
# ---------------------------------------------------------------------------


def workout_payload(uid: str = "W-1", with_route: bool = True, **overrides) -> dict:
    payload = {
        "healthkit_uuid": uid,
        "workout_type": "running",
        "start_date": T0.isoformat(),
        "end_date": (T0 + timedelta(minutes=30)).isoformat(),
        "total_distance_meters": 5000.0,
        "total_energy_burned_kcal": 320.5,
        "avg_heart_rate_bpm": 150,
        "max_heart_rate_bpm": 178,
        "source_name": "Apple Watch",
        "metadata": {"indoor": False, "elevation_gain": 42.5},
    }
    if with_route:
        payload["route"] = {
            "points": [
                {"lat": 37.7749, "lon": -122.4194, "timestamp": T0.isoformat(), "altitude": 10.5},
                {"lat": 37.7790, "lon": -122.4300, "timestamp": (T0 + timedelta(minutes=10)).isoformat()},
                {"lat": 37.7701, "lon": -122.4100, "timestamp": (T0 + timedelta(minutes=20)).isoformat()},
            ]
        }
    payload.update(overrides)
    return payload


def metric_payload(uid: str = "M-1", **overrides) -> dict:
    payload = {
        "healthkit_uuid": uid,
        "metric_type": "HKQuantityTypeIdentifierHeartRate",
        "value": 72.0,
        "unit": "count/min",
        "start_date": T0.isoformat(),
        "end_date": T0.isoformat(),
        "source_name": "Apple Watch",
    }
    payload.update(overrides)
    return payload


def rings_payload(day: str = "2025-01-15", **overrides) -> dict:
    payload = {
        "date": day,
        "move_goal_kcal": 500,
        "move_actual_kcal": 620,
        "move_percent": 124.0,
        "exercise_goal_minutes": 30,
        "exercise_actual_minutes": 45,
        "exercise_percent": 150.0,
        "stand_goal_hours": 12,
        "stand_actual_hours": 10,
        "stand_percent": 83.33,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# In-memory fakes
# ---------------------------------------------------------------------------


class FakeRecordStore:
    """In-memory stand-in for RecordStore with the same conflict semantics."""

    def __init__(self, owners: set[uuid.UUID] | None = None) -> None:
        self.owners: set[uuid.UUID] = set(owners or {TEST_OWNER})
        self.workouts: dict[str, dict] = {}
        self.routes: dict[uuid.UUID, dict] = {}
        self.metrics: dict[str, dict] = {}
        self.rings: dict[tuple[uuid.UUID, date], dict] = {}
        self.unavailable = False
        self.fail_uuids: set[str] = set()

    def _check(self, owner: uuid.UUID, key: str | None = None) -> None:
        if self.unavailable:
            raise StorageUnavailableError("connection refused")
        if key is not None and key in self.fail_uuids:
            raise RuntimeError(f"simulated failure for {key}")
        if owner not in self.owners:
            raise ValueError(f"owner {owner} does not exist")

    async def ensure_owner(self, owner: uuid.UUID) -> None:
        self.owners.add(owner)

    async def delete_owner(self, owner: uuid.UUID) -> bool:
        if owner not in self.owners:
            return False
        self.owners.discard(owner)
        for uid in [u for u, w in self.workouts.items() if w["user_id"] == owner]:
            self.routes.pop(self.workouts.pop(uid)["id"], None)
        for uid in [u for u, m in self.metrics.items() if m["user_id"] == owner]:
            del self.metrics[uid]
        for key in [k for k in self.rings if k[0] == owner]:
            del self.rings[key]
        return True

    async def insert_workout(self, owner: uuid.UUID, workout: WorkoutIn) -> InsertOutcome:
        self._check(owner, workout.healthkit_uuid)
        if workout.healthkit_uuid in self.workouts:
            return InsertOutcome.DUPLICATE
        row = workout.model_dump(exclude={"route"})
        row.update(id=uuid.uuid4(), user_id=owner, created_at=datetime.now(timezone.utc))
        self.workouts[workout.healthkit_uuid] = row
        points = workout.route.points if workout.route else []
        if points:
            b = compute_bounds(points)
            self.routes[row["id"]] = {
                "workout_id": row["id"],
                "total_points": len(points),
                "points": [p.model_dump(mode="json", exclude_none=True) for p in points],
                "bounds": {
                    "min_lat": b.min_lat,
                    "max_lat": b.max_lat,
                    "min_lon": b.min_lon,
                    "max_lon": b.max_lon,
                },
            }
        return InsertOutcome.CREATED

    async def insert_metric(self, owner: uuid.UUID, metric: HealthMetricIn) -> InsertOutcome:
        self._check(owner, metric.healthkit_uuid)
        if metric.healthkit_uuid in self.metrics:
            return InsertOutcome.DUPLICATE
        self.metrics[metric.healthkit_uuid] = {**metric.model_dump(), "user_id": owner}
        return InsertOutcome.CREATED

    async def upsert_activity_summary(
        self, owner: uuid.UUID, summary: ActivitySummaryIn
    ) -> InsertOutcome:
        self._check(owner)
        key = (owner, summary.date)
        existed = key in self.rings
        self.rings[key] = summary.model_dump()
        return InsertOutcome.UPDATED if existed else InsertOutcome.CREATED

    async def recent_workouts(self, owner: uuid.UUID, days: int) -> list[dict]:
        rows = [w for w in self.workouts.values() if w["user_id"] == owner]
        return [{**w, "has_route": w["id"] in self.routes} for w in rows]

    async def recent_activity_rings(self, owner: uuid.UUID, days: int) -> list[dict]:
        return [r for (o, _), r in self.rings.items() if o == owner]

    async def summary_stats(self, owner: uuid.UUID, days: int) -> dict:
        rows = [w for w in self.workouts.values() if w["user_id"] == owner]
        if not rows:
            return {
                "total_workouts": 0,
                "total_distance_km": 0.0,
                "total_calories": 0.0,
                "avg_workout_duration_minutes": 0.0,
            }
        return {
            "total_workouts": len(rows),
            "total_distance_km": round(sum(w["total_distance_meters"] or 0 for w in rows) / 1000, 2),
            "total_calories": round(sum(w["total_energy_burned_kcal"] or 0 for w in rows), 1),
            "avg_workout_duration_minutes": round(
                sum(w["duration_seconds"] for w in rows) / len(rows) / 60, 1
            ),
        }

    async def get_workout(self, workout_id: uuid.UUID) -> dict | None:
        return next((w for w in self.workouts.values() if w["id"] == workout_id), None)

    async def get_workout_route(self, workout_id: uuid.UUID) -> dict | None:
        return self.routes.get(workout_id)

    async def get_activity_summary(self, owner: uuid.UUID, day: date) -> dict | None:
        return self.rings.get((owner, day))

    async def metrics_by_type(self, owner, metric_type, start=None, end=None) -> list[dict]:
        rows = [
            m for m in self.metrics.values()
            if m["user_id"] == owner and m["metric_type"] == metric_type
            and (start is None or m["start_date"] >= start)
            and (end is None or m["start_date"] <= end)
        ]
        return sorted(rows, key=lambda m: m["start_date"])


class FakeAnchorTracker:
    def __init__(self) -> None:
        self.anchors: dict[tuple[uuid.UUID, str], StoredAnchor] = {}
        self.unavailable = False

    async def get_anchor(self, owner: uuid.UUID, data_type: str) -> StoredAnchor | None:
        if self.unavailable:
            raise StorageUnavailableError("connection refused")
        return self.anchors.get((owner, data_type))

    async def put_anchor(self, owner: uuid.UUID, data_type: str, payload: str) -> AnchorWrite:
        if self.unavailable:
            raise StorageUnavailableError("connection refused")
        created = (owner, data_type) not in self.anchors
        now = datetime.now(timezone.utc)
        self.anchors[(owner, data_type)] = StoredAnchor(data_type, payload, now)
        return AnchorWrite(created=created, last_sync_at=now)


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def fake_anchors() -> FakeAnchorTracker:
    return FakeAnchorTracker()

