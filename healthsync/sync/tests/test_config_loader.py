"""Tests for sync plan loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from healthsync.sync import config_loader
from healthsync.sync.config_loader import (
    ConfigValidationError,
    get_sync_plan,
    load_sync_plan,
    reload_sync_plan,
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "sync_config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_loader, "_plan", None)


class TestBundledConfig:
    def test_loads(self) -> None:
        plan = load_sync_plan()
        assert plan.default_lookback_days == 7
        assert plan.historical_import_days == 365
        assert plan.poll_interval_seconds == 3600
        assert plan.metric_types["HKQuantityTypeIdentifierHeartRate"] == "count/min"
        assert plan.metric_types["HKQuantityTypeIdentifierBodyMass"] == "kg"


class TestValidation:
    def test_defaults_for_missing_keys(self, tmp_path: Path) -> None:
        plan = load_sync_plan(_write(tmp_path, "metric_types: {}\n"))
        assert plan.activity_window_days == 7
        assert plan.metric_types == {}

    def test_errors_are_aggregated(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "default_lookback_days: 0\n"
            "poll_interval_seconds: soon\n"
            "metric_types:\n"
            "  HKQuantityTypeIdentifierStepCount: ''\n",
        )
        with pytest.raises(ConfigValidationError) as exc_info:
            load_sync_plan(path)
        message = str(exc_info.value)
        assert "3 validation error(s)" in message
        assert "default_lookback_days must be positive" in message
        assert "poll_interval_seconds must be an integer" in message
        assert "HKQuantityTypeIdentifierStepCount" in message

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigValidationError):
            load_sync_plan(_write(tmp_path, "- just\n- a list\n"))

    def test_yaml_syntax_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigValidationError):
            load_sync_plan(_write(tmp_path, "metric_types: [unclosed\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_sync_plan(tmp_path / "absent.yaml")


class TestCaching:
    def test_cached_until_reload(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "default_lookback_days: 3\n")
        assert get_sync_plan(path).default_lookback_days == 3

        path.write_text("default_lookback_days: 5\n", encoding="utf-8")
        assert get_sync_plan(path).default_lookback_days == 3
        assert reload_sync_plan(path).default_lookback_days == 5
        assert get_sync_plan(path).default_lookback_days == 5

    def test_failed_reload_keeps_previous_plan(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "default_lookback_days: 3\n")
        get_sync_plan(path)
        path.write_text("default_lookback_days: -1\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            reload_sync_plan(path)
        assert get_sync_plan(path).default_lookback_days == 3
