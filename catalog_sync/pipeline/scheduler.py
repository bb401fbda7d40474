"""Periodic re-invocation of the orchestrator entry point."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from catalog_sync.errors import AlreadyRunningError, ProbeFailure
from catalog_sync.models.data_models import SyncReport
from catalog_sync.pipeline.orchestrator import SyncOrchestrator


class PeriodicTrigger:
    """
    Calls ``orchestrator.trigger()`` every ``interval`` seconds.

    A rejected trigger (run already in progress) or a failed probe is left
    to the orchestrator's log and the next tick proceeds as scheduled.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval: float,
        on_report: Optional[Callable[[SyncReport], Any]] = None,
        sleeper: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got: {interval}")
        self.orchestrator = orchestrator
        self.interval = interval
        self.on_report = on_report
        self._sleep = sleeper

    async def run(self, iterations: Optional[int] = None) -> int:
        """
        Trigger ``iterations`` runs (forever when None).

        Returns:
            Number of runs that produced a report
        """
        ticks = 0
        reports = 0
        while iterations is None or ticks < iterations:
            try:
                report = await self.orchestrator.trigger()
            except (AlreadyRunningError, ProbeFailure):
                pass
            else:
                reports += 1
                if self.on_report:
                    self.on_report(report)

            ticks += 1
            if iterations is None or ticks < iterations:
                await self._sleep(self.interval)
        return reports
