"""Health source backed by a JSON export file.

The export is the structured format produced by iOS Shortcuts and apps like
Health Auto Export, grouped by record family::

    {
        "workouts": [{"uuid": "...", "workoutActivityType": "running",
                      "startDate": "...", "endDate": "...", "route": [...]}],
        "metrics": {
            "HKQuantityTypeIdentifierHeartRate": [
                {"uuid": "...", "value": 72, "startDate": "...", "endDate": "..."}
            ]
        },
        "activity_summaries": [{"date": "2025-01-15", "move_goal_kcal": 500, ...}]
    }

Both camelCase export keys and the snake_case wire names are accepted.

The file is append-only from the source's point of view: new records are
added at the end of each list.  The anchor is therefore a consumed-record
count per list, encoded as ``"v1:<count>"``.  Callers treat it as opaque.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from healthsync.models.activity import ring_percent
from healthsync.sync.source import HealthDataSource, SourceBatch, SourceQueryError

logger = logging.getLogger("healthsync.sync.adapters.json_export")

_ANCHOR_PREFIX = "v1:"

# Export key → wire field
_KEY_MAP: dict[str, str] = {
    "uuid": "healthkit_uuid",
    "startDate": "start_date",
    "endDate": "end_date",
    "workoutActivityType": "workout_type",
    "duration": "duration_seconds",
    "totalDistance": "total_distance_meters",
    "totalEnergyBurned": "total_energy_burned_kcal",
    "sourceName": "source_name",
    "sourceBundleId": "source_bundle_id",
    "deviceName": "device_name",
    "horizontalAccuracy": "horizontal_accuracy",
    "latitude": "lat",
    "longitude": "lon",
}

# Ring triples: (goal, actual, percent)
_RINGS: tuple[tuple[str, str, str], ...] = (
    ("move_goal_kcal", "move_actual_kcal", "move_percent"),
    ("exercise_goal_minutes", "exercise_actual_minutes", "exercise_percent"),
    ("stand_goal_hours", "stand_actual_hours", "stand_percent"),
)


def encode_anchor(consumed: int) -> str:
    return f"{_ANCHOR_PREFIX}{consumed}"


def decode_anchor(anchor: str | None) -> int:
    """Return the consumed-record count encoded in ``anchor`` (0 when None).

    Raises:
        SourceQueryError: If the anchor was not produced by this source.
    """
    if anchor is None:
        return 0
    if not anchor.startswith(_ANCHOR_PREFIX):
        raise SourceQueryError(f"Unrecognized anchor: {anchor!r}")
    try:
        consumed = int(anchor[len(_ANCHOR_PREFIX):])
    except ValueError:
        raise SourceQueryError(f"Unrecognized anchor: {anchor!r}") from None
    if consumed < 0:
        raise SourceQueryError(f"Unrecognized anchor: {anchor!r}")
    return consumed


def _normalize_keys(record: dict) -> dict:
    return {_KEY_MAP.get(k, k): v for k, v in record.items()}


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _starts_at_or_after(record: dict, since: datetime | None) -> bool:
    if since is None:
        return True
    # Unparseable timestamps are kept so the server reports them per record.
    start = _parse_timestamp(record.get("start_date"))
    return start is None or start >= since


def _normalize_workout(raw: dict) -> dict:
    record = _normalize_keys(raw)
    route = record.get("route")
    if isinstance(route, list):
        record["route"] = {"points": [_normalize_keys(p) for p in route if isinstance(p, dict)]}
    elif isinstance(route, dict) and isinstance(route.get("points"), list):
        record["route"] = {
            "points": [_normalize_keys(p) for p in route["points"] if isinstance(p, dict)]
        }
    return record


def _normalize_summary(raw: dict) -> dict:
    record = _normalize_keys(raw)
    for goal, actual, percent in _RINGS:
        if percent not in record:
            try:
                record[percent] = round(
                    ring_percent(float(record.get(actual, 0)), float(record.get(goal, 0))), 2
                )
            except (TypeError, ValueError):
                continue
    return record


class JsonExportSource(HealthDataSource):
    """Read records incrementally from a JSON export on disk."""

    name = "json_export"

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    async def _load(self) -> dict:
        try:
            text = await asyncio.to_thread(self._path.read_text, "utf-8")
        except OSError as exc:
            raise SourceQueryError(f"Cannot read export {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceQueryError(f"Malformed export {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SourceQueryError(f"Export {self._path} must be a JSON object")
        return data

    @staticmethod
    def _section(data: dict, key: str) -> list[dict]:
        section = data.get(key, [])
        if not isinstance(section, list):
            raise SourceQueryError(f"Export section '{key}' must be a list")
        return [r for r in section if isinstance(r, dict)]

    def _incremental(
        self, rows: list[dict], since: datetime | None, anchor: str | None
    ) -> SourceBatch:
        consumed = decode_anchor(anchor)
        if consumed > len(rows):
            # The export was replaced by a shorter one; start over.
            logger.warning(
                "Anchor %s is past the end of %s (%d records); rescanning",
                anchor, self._path, len(rows),
            )
            consumed = 0
        fresh = [r for r in rows[consumed:] if _starts_at_or_after(r, since)]
        return SourceBatch(records=fresh, new_anchor=encode_anchor(len(rows)))

    async def fetch_workouts(self, since: datetime | None, anchor: str | None) -> SourceBatch:
        data = await self._load()
        rows = [_normalize_workout(r) for r in self._section(data, "workouts")]
        batch = self._incremental(rows, since, anchor)
        logger.debug("Fetched %d workouts from %s", len(batch), self._path)
        return batch

    async def fetch_metrics(
        self, metric_type: str, unit: str, since: datetime | None, anchor: str | None
    ) -> SourceBatch:
        data = await self._load()
        metrics = data.get("metrics", {})
        if not isinstance(metrics, dict):
            raise SourceQueryError("Export section 'metrics' must be a mapping")
        rows = []
        for raw in self._section(metrics, metric_type):
            record = _normalize_keys(raw)
            record["metric_type"] = metric_type
            record.setdefault("unit", unit)
            rows.append(record)
        batch = self._incremental(rows, since, anchor)
        logger.debug("Fetched %d %s samples from %s", len(batch), metric_type, self._path)
        return batch

    async def fetch_activity_summaries(self, since: date) -> SourceBatch:
        data = await self._load()
        records = []
        for raw in self._section(data, "activity_summaries"):
            record = _normalize_summary(raw)
            try:
                day = date.fromisoformat(str(record.get("date")))
            except ValueError:
                records.append(record)
                continue
            if day >= since:
                records.append(record)
        return SourceBatch(records=records)

