"""Periodic trigger producer for the sync orchestrator.

The scheduler does no sync work itself; it decides when a periodic run is
due and posts into ``SyncOrchestrator.trigger("periodic")``, the same entry
point used by manual runs and background wake-ups.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from healthsync.sync.orchestrator import SyncOrchestrator, SyncRunReport

logger = logging.getLogger("healthsync.sync.scheduler")


class SyncScheduler:
    """Fire periodic sync triggers until stopped.

    Usage::

        stop = asyncio.Event()
        scheduler = SyncScheduler(orchestrator, interval_seconds=3600)
        await scheduler.run_forever(stop)
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval_seconds: int,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """Initialize the scheduler.

        Args:
            orchestrator:     Orchestrator whose ``trigger`` is called.
            interval_seconds: Minimum time between successful runs.
            clock:            Returns the current UTC time.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._orchestrator = orchestrator
        self._interval = interval_seconds
        self._clock = clock

    def should_sync(self, last_sync_at: datetime | None) -> bool:
        """Return True if a periodic run is due.

        Args:
            last_sync_at: UTC datetime of last successful run (None = never).

        Returns:
            True if it's time to sync.
        """
        if last_sync_at is None:
            return True
        elapsed = (self._clock() - last_sync_at).total_seconds()
        return elapsed >= self._interval

    async def tick(self) -> SyncRunReport | None:
        """Trigger one periodic run if due."""
        if not self.should_sync(self._orchestrator.state.last_sync_at):
            logger.debug("Periodic sync not due yet")
            return None
        return await self._orchestrator.trigger("periodic")

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Tick every ``interval_seconds`` until ``stop_event`` is set."""
        logger.info("SyncScheduler started (interval=%ds)", self._interval)
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Periodic sync run failed; retrying next interval")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
        logger.info("SyncScheduler stopped")
