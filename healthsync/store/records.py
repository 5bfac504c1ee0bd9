"""Workout, route, metric-sample and activity-summary persistence.

Every write runs in its own transaction so a failure on one record never
rolls back a sibling in the same batch.  Dedup is enforced by the UNIQUE
constraints in ``schema.sql``; this module only maps conflict outcomes to
``InsertOutcome`` values.
"""

from __future__ import annotations

import enum
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import asyncpg

from healthsync.models.activity import RING_FIELDS, ActivitySummaryIn
from healthsync.models.metrics import HealthMetricIn
from healthsync.models.workouts import WorkoutIn
from healthsync.services.database import connection, transaction
from healthsync.store.geo import compute_bounds
from healthsync.store.upserts import INSERTED_FLAG, build_upsert_query

logger = logging.getLogger("healthsync.store.records")


class InsertOutcome(str, enum.Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    UPDATED = "updated"


def _dec(value: float | None) -> Decimal | None:
    """Convert a float for a DECIMAL column without binary-float noise."""
    if value is None:
        return None
    return Decimal(str(value))


def _float(value: Any) -> float:
    return float(value) if value is not None else 0.0


# ---------- Queries ----------

_WORKOUT_COLUMNS = [
    "user_id",
    "healthkit_uuid",
    "workout_type",
    "start_date",
    "end_date",
    "duration_seconds",
    "total_distance_meters",
    "total_energy_burned_kcal",
    "avg_heart_rate_bpm",
    "max_heart_rate_bpm",
    "source_name",
    "source_bundle_id",
    "device_name",
    "metadata",
]

_INSERT_WORKOUT = build_upsert_query(
    "workouts", _WORKOUT_COLUMNS, ["healthkit_uuid"], update_columns=[]
)

_INSERT_ROUTE = """
    INSERT INTO workout_routes (
        workout_id, route_points, total_points,
        min_latitude, max_latitude, min_longitude, max_longitude
    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

_METRIC_COLUMNS = [
    "user_id",
    "healthkit_uuid",
    "metric_type",
    "value",
    "unit",
    "start_date",
    "end_date",
    "source_name",
    "source_bundle_id",
    "device_name",
    "metadata",
]

_INSERT_METRIC = build_upsert_query(
    "health_metrics", _METRIC_COLUMNS, ["healthkit_uuid"], update_columns=[]
)

_UPSERT_RINGS = build_upsert_query(
    "activity_rings",
    ["user_id", "date", *RING_FIELDS],
    ["user_id", "date"],
    update_columns=list(RING_FIELDS),
    returning=f"id, {INSERTED_FLAG}",
)


class RecordStore:
    """Owner-scoped reads and writes over the synced record tables."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    # ---------- Owners ----------

    async def ensure_owner(self, owner: uuid.UUID) -> None:
        async with transaction(self._pool) as conn:
            await conn.execute(
                "INSERT INTO users (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                owner,
            )

    async def delete_owner(self, owner: uuid.UUID) -> bool:
        """Delete an owner and, by cascade, every record and anchor it owns."""
        async with transaction(self._pool) as conn:
            deleted = await conn.fetchval(
                "DELETE FROM users WHERE id = $1 RETURNING id", owner
            )
        if deleted is not None:
            logger.info("Deleted owner %s and all owned records", owner)
        return deleted is not None

    # ---------- Writes ----------

    async def insert_workout(self, owner: uuid.UUID, workout: WorkoutIn) -> InsertOutcome:
        """Insert a workout and its route in one transaction.

        A workout whose ``healthkit_uuid`` already exists is a duplicate; its
        stored route is left untouched.
        """
        async with transaction(self._pool) as conn:
            workout_id = await conn.fetchval(
                _INSERT_WORKOUT,
                owner,
                workout.healthkit_uuid,
                workout.workout_type,
                workout.start_date,
                workout.end_date,
                workout.duration_seconds,
                _dec(workout.total_distance_meters),
                _dec(workout.total_energy_burned_kcal),
                workout.avg_heart_rate_bpm,
                workout.max_heart_rate_bpm,
                workout.source_name,
                workout.source_bundle_id,
                workout.device_name,
                workout.metadata,
            )
            if workout_id is None:
                return InsertOutcome.DUPLICATE

            points = workout.route.points if workout.route else []
            if points:
                bounds = compute_bounds(points)
                await conn.execute(
                    _INSERT_ROUTE,
                    workout_id,
                    [p.model_dump(mode="json", exclude_none=True) for p in points],
                    len(points),
                    bounds.min_lat,
                    bounds.max_lat,
                    bounds.min_lon,
                    bounds.max_lon,
                )
        return InsertOutcome.CREATED

    async def insert_metric(self, owner: uuid.UUID, metric: HealthMetricIn) -> InsertOutcome:
        async with transaction(self._pool) as conn:
            metric_id = await conn.fetchval(
                _INSERT_METRIC,
                owner,
                metric.healthkit_uuid,
                metric.metric_type,
                _dec(metric.value),
                metric.unit,
                metric.start_date,
                metric.end_date,
                metric.source_name,
                metric.source_bundle_id,
                metric.device_name,
                metric.metadata,
            )
        return InsertOutcome.DUPLICATE if metric_id is None else InsertOutcome.CREATED

    async def upsert_activity_summary(
        self, owner: uuid.UUID, summary: ActivitySummaryIn
    ) -> InsertOutcome:
        """Create or fully replace the summary for ``(owner, summary.date)``."""
        values = [
            _dec(v) if name.endswith("_percent") else v
            for name, v in ((f, getattr(summary, f)) for f in RING_FIELDS)
        ]
        async with transaction(self._pool) as conn:
            row = await conn.fetchrow(_UPSERT_RINGS, owner, summary.date, *values)
        return InsertOutcome.CREATED if row["inserted"] else InsertOutcome.UPDATED

    # ---------- Reads ----------

    async def recent_workouts(self, owner: uuid.UUID, days: int) -> list[dict]:
        async with connection(self._pool) as conn:
            rows = await conn.fetch(
                """
                SELECT w.id, w.workout_type, w.start_date, w.end_date,
                       w.duration_seconds, w.total_distance_meters,
                       w.total_energy_burned_kcal, w.avg_heart_rate_bpm,
                       w.max_heart_rate_bpm,
                       EXISTS (
                           SELECT 1 FROM workout_routes r WHERE r.workout_id = w.id
                       ) AS has_route
                FROM workouts w
                WHERE w.user_id = $1
                  AND w.start_date >= NOW() - make_interval(days => $2::int)
                ORDER BY w.start_date DESC
                """,
                owner,
                days,
            )
        return [dict(r) for r in rows]

    async def recent_activity_rings(self, owner: uuid.UUID, days: int) -> list[dict]:
        async with connection(self._pool) as conn:
            rows = await conn.fetch(
                f"""
                SELECT date, {", ".join(RING_FIELDS)}
                FROM activity_rings
                WHERE user_id = $1 AND date >= CURRENT_DATE - $2::int
                ORDER BY date DESC
                """,
                owner,
                days,
            )
        return [dict(r) for r in rows]

    async def summary_stats(self, owner: uuid.UUID, days: int) -> dict:
        """Aggregate workout totals over the window; zero-valued when empty."""
        async with connection(self._pool) as conn:
            row = await conn.fetchrow(
                """
                SELECT COUNT(*) AS total_workouts,
                       COALESCE(SUM(total_distance_meters), 0) / 1000 AS total_distance_km,
                       COALESCE(SUM(total_energy_burned_kcal), 0) AS total_calories,
                       COALESCE(AVG(duration_seconds), 0) / 60 AS avg_workout_duration_minutes
                FROM workouts
                WHERE user_id = $1
                  AND start_date >= NOW() - make_interval(days => $2::int)
                """,
                owner,
                days,
            )
        return {
            "total_workouts": int(row["total_workouts"]),
            "total_distance_km": round(_float(row["total_distance_km"]), 2),
            "total_calories": round(_float(row["total_calories"]), 1),
            "avg_workout_duration_minutes": round(_float(row["avg_workout_duration_minutes"]), 1),
        }

    async def get_workout(self, workout_id: uuid.UUID) -> dict | None:
        async with connection(self._pool) as conn:
            row = await conn.fetchrow(
                """
                SELECT id, healthkit_uuid, workout_type, start_date, end_date,
                       duration_seconds, total_distance_meters,
                       total_energy_burned_kcal, avg_heart_rate_bpm,
                       max_heart_rate_bpm, source_name, device_name,
                       metadata, created_at
                FROM workouts WHERE id = $1
                """,
                workout_id,
            )
        return dict(row) if row else None

    async def get_workout_route(self, workout_id: uuid.UUID) -> dict | None:
        async with connection(self._pool) as conn:
            row = await conn.fetchrow(
                """
                SELECT workout_id, route_points, total_points,
                       min_latitude, max_latitude, min_longitude, max_longitude
                FROM workout_routes WHERE workout_id = $1
                """,
                workout_id,
            )
        if row is None:
            return None
        return {
            "workout_id": row["workout_id"],
            "total_points": row["total_points"],
            "points": row["route_points"],
            "bounds": {
                "min_lat": float(row["min_latitude"]),
                "max_lat": float(row["max_latitude"]),
                "min_lon": float(row["min_longitude"]),
                "max_lon": float(row["max_longitude"]),
            },
        }

    async def get_activity_summary(self, owner: uuid.UUID, day: date) -> dict | None:
        async with connection(self._pool) as conn:
            row = await conn.fetchrow(
                f"""
                SELECT date, {", ".join(RING_FIELDS)}
                FROM activity_rings WHERE user_id = $1 AND date = $2
                """,
                owner,
                day,
            )
        return dict(row) if row else None

    async def metrics_by_type(
        self,
        owner: uuid.UUID,
        metric_type: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict]:
        """Samples of one metric type, oldest first, optionally windowed on start_date."""
        async with connection(self._pool) as conn:
            rows = await conn.fetch(
                """
                SELECT value, unit, start_date, end_date, source_name
                FROM health_metrics
                WHERE user_id = $1 AND metric_type = $2
                  AND ($3::timestamptz IS NULL OR start_date >= $3)
                  AND ($4::timestamptz IS NULL OR start_date <= $4)
                ORDER BY start_date ASC
                """,
                owner,
                metric_type,
                start,
                end,
            )
        return [dict(r) for r in rows]
