"""Abstract producer-side health-data source.

A source answers three kinds of query.  Workouts and metric samples are
queried incrementally: the caller passes the anchor returned by the previous
successful sync (or None) and receives the records added since, plus a new
anchor.  Activity summaries are queried over a rolling date window and carry
no anchor.

Anchors are opaque strings owned by the source; callers store and return
them without interpretation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


class SourceQueryError(RuntimeError):
    """Raised when the underlying health store cannot answer a query."""


@dataclass
class SourceBatch:
    """Records returned by one source query.

    Attributes:
        records:    Wire-format record mappings, ready to submit.
        new_anchor: Cursor to persist after a successful submission, or None.
    """

    records: list[dict[str, Any]] = field(default_factory=list)
    new_anchor: str | None = None

    def __len__(self) -> int:
        return len(self.records)


class HealthDataSource(ABC):
    """Interface every producer-side health source must implement."""

    name: str = "unknown"

    @abstractmethod
    async def fetch_workouts(self, since: datetime | None, anchor: str | None) -> SourceBatch:
        """Return workouts added after ``anchor``.

        ``since`` is a lookback floor on the start date.  Callers pass it only
        when ``anchor`` is None; with an anchor it is None and every record
        added after the anchor is returned.
        """
        ...

    @abstractmethod
    async def fetch_metrics(
        self, metric_type: str, unit: str, since: datetime | None, anchor: str | None
    ) -> SourceBatch:
        """Return samples of one metric type expressed in ``unit``, as for workouts."""
        ...

    @abstractmethod
    async def fetch_activity_summaries(self, since: date) -> SourceBatch:
        """Return daily activity summaries for every date from ``since`` to today."""
        ...
