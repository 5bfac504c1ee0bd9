"""Tests for dashboard, workout, activity-ring, metric and owner endpoints."""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from healthsync.store.tests.conftest import (
    OTHER_OWNER,
    TEST_OWNER,
    FakeRecordStore,
    metric_payload,
    rings_payload,
    workout_payload,
)

OWNER = str(TEST_OWNER)
HEART_RATE = "HKQuantityTypeIdentifierHeartRate"


@pytest.fixture
def seeded(client: TestClient, fake_store: FakeRecordStore) -> FakeRecordStore:
    client.post(
        "/sync/workouts",
        json={
            "owner": OWNER,
            "workouts": [workout_payload("W-1"), workout_payload("W-2", with_route=False)],
        },
    )
    client.post(
        "/sync/health-metrics",
        json={
            "owner": OWNER,
            "metrics": [
                metric_payload("M-2", value=80.0, start_date="2025-01-15T12:00:00Z",
                               end_date="2025-01-15T12:00:00Z"),
                metric_payload("M-1"),
            ],
        },
    )
    client.post("/sync/activity-rings", json={"owner": OWNER, "activity_rings": [rings_payload()]})
    return fake_store


class TestDashboard:
    def test_empty_window(self, client: TestClient) -> None:
        r = client.get("/dashboard/recent", params={"owner": OWNER})
        assert r.status_code == 200
        body = r.json()
        assert body["workouts"] == []
        assert body["activity_rings"] == []
        assert body["summary"] == {
            "total_workouts": 0,
            "total_distance_km": 0.0,
            "total_calories": 0.0,
            "avg_workout_duration_minutes": 0.0,
        }

    def test_with_data(self, client: TestClient, seeded: FakeRecordStore) -> None:
        body = client.get("/dashboard/recent", params={"owner": OWNER, "days": 30}).json()
        routes = {w["has_route"] for w in body["workouts"]}
        assert routes == {True, False}
        assert body["summary"]["total_workouts"] == 2
        assert body["summary"]["total_distance_km"] == 10.0
        assert body["activity_rings"][0]["move_percent"] == 124.0

    @pytest.mark.parametrize("days", [0, 91])
    def test_days_out_of_range(self, client: TestClient, days: int) -> None:
        assert client.get("/dashboard/recent", params={"days": days}).status_code == 422


class TestWorkouts:
    def test_detail(self, client: TestClient, seeded: FakeRecordStore) -> None:
        workout_id = seeded.workouts["W-1"]["id"]
        r = client.get(f"/workout/{workout_id}")
        assert r.status_code == 200
        workout = r.json()["workout"]
        assert workout["healthkit_uuid"] == "W-1"
        assert workout["duration_seconds"] == 1800
        assert workout["metadata"] == {"indoor": False, "elevation_gain": 42.5}

    def test_unknown_workout(self, client: TestClient) -> None:
        r = client.get(f"/workout/{uuid.uuid4()}")
        assert r.status_code == 404
        assert r.json() == {"detail": "Workout not found"}

    def test_route(self, client: TestClient, seeded: FakeRecordStore) -> None:
        workout_id = seeded.workouts["W-1"]["id"]
        route = client.get(f"/workout/{workout_id}/route").json()["route"]
        assert route["total_points"] == 3
        assert len(route["points"]) == 3
        assert route["bounds"] == {
            "min_lat": 37.7701, "max_lat": 37.779, "min_lon": -122.43, "max_lon": -122.41,
        }

    def test_workout_without_route(self, client: TestClient, seeded: FakeRecordStore) -> None:
        workout_id = seeded.workouts["W-2"]["id"]
        r = client.get(f"/workout/{workout_id}/route")
        assert r.status_code == 404
        assert r.json() == {"detail": "No GPS data for this workout"}


class TestActivityRings:
    def test_found(self, client: TestClient, seeded: FakeRecordStore) -> None:
        r = client.get("/activity-rings/2025-01-15", params={"owner": OWNER})
        assert r.status_code == 200
        rings = r.json()["activity_rings"]
        assert rings["date"] == "2025-01-15"
        assert rings["stand_percent"] == 83.33

    def test_missing_date(self, client: TestClient, seeded: FakeRecordStore) -> None:
        r = client.get("/activity-rings/2025-01-16", params={"owner": OWNER})
        assert r.status_code == 404

    def test_scoped_to_owner(self, client: TestClient, seeded: FakeRecordStore) -> None:
        r = client.get("/activity-rings/2025-01-15", params={"owner": str(OTHER_OWNER)})
        assert r.status_code == 404


class TestHealthMetrics:
    def test_series_ascending(self, client: TestClient, seeded: FakeRecordStore) -> None:
        body = client.get(f"/health-metrics/{HEART_RATE}", params={"owner": OWNER}).json()
        assert body["unit"] == "count/min"
        assert [p["value"] for p in body["data"]] == [72.0, 80.0]

    def test_range_filter(self, client: TestClient, seeded: FakeRecordStore) -> None:
        body = client.get(
            f"/health-metrics/{HEART_RATE}",
            params={"owner": OWNER, "start_date": "2025-01-15T11:00:00Z"},
        ).json()
        assert [p["value"] for p in body["data"]] == [80.0]

    def test_inverted_range_is_400(self, client: TestClient) -> None:
        r = client.get(
            f"/health-metrics/{HEART_RATE}",
            params={"start_date": "2025-01-16T00:00:00Z", "end_date": "2025-01-15T00:00:00Z"},
        )
        assert r.status_code == 400

    def test_unknown_type_is_empty(self, client: TestClient) -> None:
        body = client.get("/health-metrics/HKQuantityTypeIdentifierBodyMass", params={"owner": OWNER}).json()
        assert body == {
            "success": True,
            "metric_type": "HKQuantityTypeIdentifierBodyMass",
            "unit": "",
            "data": [],
        }


class TestOwners:
    def test_delete_cascades(self, client: TestClient, seeded: FakeRecordStore) -> None:
        r = client.delete(f"/owners/{OWNER}")
        assert r.status_code == 204
        assert seeded.workouts == {}
        assert seeded.routes == {}
        assert seeded.metrics == {}
        assert seeded.rings == {}

    def test_delete_unknown_owner(self, client: TestClient) -> None:
        assert client.delete(f"/owners/{OTHER_OWNER}").status_code == 404
