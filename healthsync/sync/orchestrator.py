"""Producer-side sync orchestrator.

One run walks every data type in the plan::

    preflight health check
      └─ workouts
      └─ each configured metric type
      └─ activity summaries (rolling window, no anchor)

For each anchored data type: load anchor → query source → skip when empty →
submit → advance anchor on SUCCESS or PARTIAL.  A failure on one data type
is recorded in the run report and the run moves on to the next one.

All triggers (manual, periodic, background wake-up) enter through
``trigger()``.  At most one run is in progress at any time; a trigger that
arrives during a run is dropped and returns None.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Awaitable, Callable

from healthsync.models.sync import SyncStatus
from healthsync.sync.anchors import AnchorStore
from healthsync.sync.client import IngestionClient, IngestionError, SubmitResult
from healthsync.sync.config_loader import SyncPlan
from healthsync.sync.source import HealthDataSource, SourceBatch, SourceQueryError

logger = logging.getLogger("healthsync.sync.orchestrator")

WORKOUTS = "workouts"
ACTIVITY_SUMMARIES = "activity_summaries"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncState:
    """Observable orchestrator state.

    Attributes:
        is_syncing:   True while a run is in progress.
        last_sync_at: Completion time of the last fully successful run.
        last_error:   Most recent error message, cleared by a clean run.
    """

    is_syncing: bool = False
    last_sync_at: datetime | None = None
    last_error: str | None = None


@dataclass
class DataTypeOutcome:
    """What happened to one data type during a run."""

    data_type: str
    fetched: int = 0
    status: SyncStatus | None = None
    synced: int = 0
    skipped: int = 0
    updated: int = 0
    record_errors: int = 0
    anchor_advanced: bool = False
    error: str | None = None

    @property
    def was_empty(self) -> bool:
        return self.error is None and self.fetched == 0


@dataclass
class SyncRunReport:
    reason: str
    started_at: datetime
    finished_at: datetime | None = None
    outcomes: list[DataTypeOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(o.error is None for o in self.outcomes)

    @property
    def total_synced(self) -> int:
        return sum(o.synced for o in self.outcomes)


class SyncOrchestrator:
    """Drive sync runs from a health source to the ingestion server."""

    def __init__(
        self,
        source: HealthDataSource,
        client: IngestionClient,
        anchors: AnchorStore,
        plan: SyncPlan,
        owner: uuid.UUID,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._source = source
        self._client = client
        self._anchors = anchors
        self._plan = plan
        self._owner = owner
        self._clock = clock
        self.state = SyncState()

    # ---------- Entry points ----------

    async def trigger(self, reason: str = "manual") -> SyncRunReport | None:
        """Start an incremental run unless one is already in progress."""
        return await self._guarded(reason, historical=False)

    async def import_history(self) -> SyncRunReport | None:
        """Run over the historical window, ignoring stored anchors."""
        return await self._guarded("history", historical=True)

    async def _guarded(self, reason: str, historical: bool) -> SyncRunReport | None:
        # The check and the set happen with no await in between.
        if self.state.is_syncing:
            logger.info("Sync already in progress; ignoring %s trigger", reason)
            return None
        self.state.is_syncing = True
        try:
            return await self._run(reason, historical)
        finally:
            self.state.is_syncing = False

    # ---------- Run ----------

    async def _run(self, reason: str, historical: bool) -> SyncRunReport:
        report = SyncRunReport(reason=reason, started_at=self._clock())
        logger.info("Sync run started (%s)", reason)

        try:
            healthy = await self._client.health_check()
        except Exception:
            logger.exception("Health check failed unexpectedly")
            healthy = False
        if not healthy:
            report.error = "Server unreachable: health check failed"
            report.finished_at = self._clock()
            self.state.last_error = report.error
            logger.warning("Sync run aborted: %s", report.error)
            return report

        plan = self._plan
        lookback = plan.historical_import_days if historical else plan.default_lookback_days
        floor = report.started_at - timedelta(days=lookback)

        report.outcomes.append(
            await self._sync_anchored(
                WORKOUTS,
                self._source.fetch_workouts,
                self._client.submit_workouts,
                historical,
                floor,
            )
        )

        for metric_type, unit in plan.metric_types.items():
            report.outcomes.append(
                await self._sync_anchored(
                    metric_type,
                    lambda since, anchor, mt=metric_type, u=unit: self._source.fetch_metrics(
                        mt, u, since, anchor
                    ),
                    self._client.submit_metrics,
                    historical,
                    floor,
                )
            )

        window = lookback if historical else plan.activity_window_days
        report.outcomes.append(
            await self._sync_activity((report.started_at - timedelta(days=window)).date())
        )

        report.finished_at = self._clock()
        failed = [o for o in report.outcomes if o.error]
        if failed:
            self.state.last_error = failed[-1].error
        else:
            self.state.last_sync_at = report.finished_at
            self.state.last_error = None

        logger.info(
            "Sync run finished (%s): %d synced, %d data types failed",
            reason, report.total_synced, len(failed),
        )
        return report

    async def _sync_anchored(
        self,
        data_type: str,
        query: Callable[[datetime | None, str | None], Awaitable[SourceBatch]],
        submit: Callable[[uuid.UUID, list[dict]], Awaitable[SubmitResult]],
        historical: bool,
        floor: datetime,
    ) -> DataTypeOutcome:
        outcome = DataTypeOutcome(data_type=data_type)
        try:
            anchor = None if historical else await self._anchors.get(data_type)
            # The lookback floor only bounds a query that has no anchor.
            batch = await query(floor if anchor is None else None, anchor)
            outcome.fetched = len(batch)
            if not batch.records:
                logger.debug("No new %s records; anchor left unchanged", data_type)
                return outcome

            result = await submit(self._owner, batch.records)
            self._apply_result(outcome, result)

            if result.advances_anchor and batch.new_anchor is not None:
                await self._anchors.put(data_type, batch.new_anchor)
                outcome.anchor_advanced = True
        except (SourceQueryError, IngestionError) as exc:
            outcome.error = f"{data_type}: {exc}"
            logger.warning("Sync failed for %s: %s", data_type, exc)
        except Exception as exc:
            outcome.error = f"{data_type}: unexpected error: {exc}"
            logger.exception("Unexpected error syncing %s", data_type)
        return outcome

    async def _sync_activity(self, since: date) -> DataTypeOutcome:
        outcome = DataTypeOutcome(data_type=ACTIVITY_SUMMARIES)
        try:
            batch = await self._source.fetch_activity_summaries(since)
            outcome.fetched = len(batch)
            if not batch.records:
                logger.debug("No activity summaries since %s", since)
                return outcome
            result = await self._client.submit_activity_summaries(self._owner, batch.records)
            self._apply_result(outcome, result)
        except (SourceQueryError, IngestionError) as exc:
            outcome.error = f"{ACTIVITY_SUMMARIES}: {exc}"
            logger.warning("Sync failed for %s: %s", ACTIVITY_SUMMARIES, exc)
        except Exception as exc:
            outcome.error = f"{ACTIVITY_SUMMARIES}: unexpected error: {exc}"
            logger.exception("Unexpected error syncing %s", ACTIVITY_SUMMARIES)
        return outcome

    @staticmethod
    def _apply_result(outcome: DataTypeOutcome, result: SubmitResult) -> None:
        outcome.status = result.status
        outcome.synced = result.synced
        outcome.skipped = result.skipped
        outcome.updated = result.updated
        outcome.record_errors = len(result.errors)
        if result.status is SyncStatus.FAILED:
            outcome.error = (
                f"{outcome.data_type}: server rejected all {outcome.fetched} records"
            )
            logger.warning("Sync failed for %s: %s", outcome.data_type, outcome.error)
        elif result.errors:
            logger.warning(
                "%s: %d of %d records rejected", outcome.data_type,
                len(result.errors), outcome.fetched,
            )
