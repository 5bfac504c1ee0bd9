"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Union

from pydantic import BaseModel, ConfigDict

# Free-form metadata values: a small closed set of scalars, stored as JSONB.
MetadataValue = Union[str, int, float, bool, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncBase(BaseModel):
    """Base model with shared config for all healthsync schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorDetail(BaseModel):
    detail: str
