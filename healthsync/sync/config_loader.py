"""Load and validate the producer-side sync plan.

The plan lives in ``sync_config.yaml`` alongside this module.  It is loaded
once and cached; ``reload_sync_plan()`` re-reads it from disk.

Usage::

    from healthsync.sync.config_loader import get_sync_plan

    plan = get_sync_plan()
    plan.metric_types["HKQuantityTypeIdentifierHeartRate"]   # "count/min"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("healthsync.sync.config")

_CONFIG_PATH = Path(__file__).parent / "sync_config.yaml"


@dataclass
class SyncPlan:
    """Validated sync plan.

    Attributes:
        version:                Config schema version string.
        default_lookback_days:  Lookback for a data type with no anchor.
        historical_import_days: Lookback for an explicit historical import.
        activity_window_days:   Rolling window for activity summaries.
        poll_interval_seconds:  Interval between periodic triggers.
        metric_types:           Metric type identifier → unit.
    """

    version: str = "1.0"
    default_lookback_days: int = 7
    historical_import_days: int = 365
    activity_window_days: int = 7
    poll_interval_seconds: int = 3600
    metric_types: dict[str, str] = field(default_factory=dict)


class ConfigValidationError(ValueError):
    """Raised when sync_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Sync config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{path} must contain a mapping at the top level")
    return data


def _validate_and_build(raw: dict) -> SyncPlan:
    errors: list[str] = []

    def _positive_int(key: str, default: int) -> int:
        value: Any = raw.get(key, default)
        try:
            n = int(value)
        except (TypeError, ValueError):
            errors.append(f"{key} must be an integer, got {value!r}")
            return default
        if n <= 0:
            errors.append(f"{key} must be positive, got {n}")
        return n

    plan = SyncPlan(
        version=str(raw.get("version", "1.0")),
        default_lookback_days=_positive_int("default_lookback_days", 7),
        historical_import_days=_positive_int("historical_import_days", 365),
        activity_window_days=_positive_int("activity_window_days", 7),
        poll_interval_seconds=_positive_int("poll_interval_seconds", 3600),
    )

    metric_raw = raw.get("metric_types", {})
    if not isinstance(metric_raw, dict):
        errors.append("metric_types must be a mapping of type identifier→unit")
    else:
        for metric_type, unit in metric_raw.items():
            if not isinstance(unit, str) or not unit.strip():
                errors.append(f"metric_types.{metric_type} must be a non-empty unit string")
                continue
            plan.metric_types[str(metric_type)] = unit.strip()

    if errors:
        raise ConfigValidationError(
            f"sync_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )
    return plan


def load_sync_plan(path: Path | None = None) -> SyncPlan:
    """Load and validate the sync plan from disk.

    Args:
        path: Override path to YAML. Uses the bundled sync_config.yaml by default.

    Returns:
        Validated SyncPlan instance.
    """
    target = path or _CONFIG_PATH
    plan = _validate_and_build(_load_yaml(target))
    logger.info(
        "Loaded sync plan v%s from %s (%d metric types)",
        plan.version, target, len(plan.metric_types),
    )
    return plan


_plan: SyncPlan | None = None
_plan_lock = threading.Lock()


def get_sync_plan(path: Path | None = None) -> SyncPlan:
    """Return the cached SyncPlan, loading it on first call."""
    global _plan
    if _plan is None:
        with _plan_lock:
            if _plan is None:
                _plan = load_sync_plan(path)
    return _plan


def reload_sync_plan(path: Path | None = None) -> SyncPlan:
    """Re-read the sync plan from disk and replace the cached instance.

    On a validation error the previous plan stays in place and the error
    is raised.
    """
    global _plan
    new_plan = load_sync_plan(path)
    with _plan_lock:
        _plan = new_plan
    logger.info("Sync plan reloaded (v%s)", new_plan.version)
    return new_plan
