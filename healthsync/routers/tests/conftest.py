"""API test fixtures: the real app wired to in-memory stores.

The lifespan (pool + schema) is not entered; record and anchor dependencies
are overridden with the in-memory fakes.
"""

from __future__ import annotations

import os

os.environ.setdefault("API_KEY", "test-key")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from healthsync.config import Settings, get_settings
from healthsync.dependencies import get_anchor_tracker, get_record_store
from healthsync.main import create_app
from healthsync.store.tests.conftest import FakeAnchorTracker, FakeRecordStore

API_KEY = "test-key"


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key=API_KEY)


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def fake_anchors() -> FakeAnchorTracker:
    return FakeAnchorTracker()


@pytest.fixture
def app(settings: Settings, fake_store: FakeRecordStore, fake_anchors: FakeAnchorTracker) -> FastAPI:
    application = create_app(settings)
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_record_store] = lambda: fake_store
    application.dependency_overrides[get_anchor_tracker] = lambda: fake_anchors
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, headers={"X-API-Key": API_KEY})


@pytest.fixture
def anon_client(app: FastAPI) -> TestClient:
    return TestClient(app)
