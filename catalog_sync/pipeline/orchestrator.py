"""Sync orchestrator: probe, partition, run workers, report."""

import asyncio
import threading
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

import httpx

from catalog_sync.errors import AlreadyRunningError, ProbeFailure
from catalog_sync.fetcher.feed_client import FeedClient
from catalog_sync.fetcher.http_client import AsyncHTTPClient
from catalog_sync.fetcher.retry_handler import RetryingFetchClient
from catalog_sync.models.config import SyncConfig
from catalog_sync.models.data_models import BatchTask, RunState, RunStatus, SyncReport
from catalog_sync.monitoring.logger import StructuredLogger
from catalog_sync.pipeline.worker import BatchWorker
from catalog_sync.store.base import CatalogStore
from catalog_sync.sync.categories import CategoryResolver
from catalog_sync.sync.reconciler import BatchReconciler, HandleRegistry
from catalog_sync.sync.stats import StatsAggregator
from catalog_sync.sync.tasks import distribute, generate_tasks


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncOrchestrator:
    """
    Drives sync runs through ``IDLE -> RUNNING -> SUCCEEDED | FAILED``.

    Single-flight: a trigger while a run is in progress raises
    AlreadyRunningError and leaves that run untouched. A failed probe fails
    the run before any task exists; failed batches only show up in the
    stats of an otherwise succeeded run.
    """

    def __init__(
        self,
        config: SyncConfig,
        feed: FeedClient,
        store: CatalogStore,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Initialize orchestrator with its collaborators.

        Args:
            config: Run configuration
            feed: Feed client used for the probe and every batch fetch
            store: Catalog store receiving the reconciled batches
            logger: Structured logger (defaults to one at ``config.log_level``)
        """
        self.config = config
        self.feed = feed
        self.store = store
        self.logger = logger or StructuredLogger(level=config.log_level)
        self._state_lock = threading.Lock()
        self._state = RunState.IDLE
        self._status = RunStatus()
        self._aggregator: Optional[StatsAggregator] = None

    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def status(self) -> RunStatus:
        """Copy of the current run status; live stats while a run is in progress."""
        with self._state_lock:
            status = replace(self._status)
            aggregator = self._aggregator if self._state is RunState.RUNNING else None
        if aggregator is not None:
            status.stats = aggregator.snapshot()
        return status

    async def trigger(self) -> SyncReport:
        """
        Run one sync and return its report.

        Raises:
            AlreadyRunningError: Another run is in progress
            ProbeFailure: The total-count probe failed
        """
        self._begin()
        return await self._run_claimed()

    def start_background(self) -> "asyncio.Task[SyncReport]":
        """
        Start a run without awaiting it.

        The single-flight check happens before this returns, so a duplicate
        trigger is rejected immediately rather than from inside the task.
        """
        self._begin()
        return asyncio.get_running_loop().create_task(self._run_claimed())

    def _begin(self) -> None:
        with self._state_lock:
            if self._state is RunState.RUNNING:
                self.logger.run_rejected(reason="sync already running")
                raise AlreadyRunningError("A sync run is already in progress")
            self._state = RunState.RUNNING
            self._status = replace(
                self._status,
                is_running=True,
                last_run_at=_utc_now(),
                last_error=None,
            )

    def _finish(self, state: RunState, duration: float, report: Optional[SyncReport], error: Optional[str]) -> None:
        with self._state_lock:
            self._state = state
            self._aggregator = None
            self._status = replace(
                self._status,
                is_running=False,
                last_status=state,
                last_error=error,
                last_duration=duration,
                stats=report.stats if report else None,
            )

    async def _run_claimed(self) -> SyncReport:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            report = await self._execute()
        except (Exception, asyncio.CancelledError) as e:
            duration = loop.time() - started
            self._finish(RunState.FAILED, duration, None, str(e) or type(e).__name__)
            self.logger.run_finished(status=RunState.FAILED.value, duration=duration, stats={})
            raise

        self._finish(RunState.SUCCEEDED, report.duration_seconds, report, report.error)
        self.logger.run_finished(
            status=report.status.value,
            duration=report.duration_seconds,
            stats=report.stats.to_dict(),
        )
        return report

    async def _execute(self) -> SyncReport:
        config = self.config
        started_at = _utc_now()
        aggregator = StatsAggregator()
        aggregator.start_timer()
        with self._state_lock:
            self._aggregator = aggregator

        self.logger.run_started(
            feed_url=config.feed_url,
            workers=config.worker_count,
            batch_size=config.batch_size,
        )

        try:
            reported_total = await self.feed.probe_total()
        except Exception as e:
            self.logger.probe_failed(error=str(e))
            raise ProbeFailure(f"Probe failed: {e}") from e

        total = max(0, min(reported_total, config.safe_max_items))
        self.logger.probe_complete(reported_total=reported_total, total=total)

        tasks = generate_tasks(total, config.batch_size)
        groups = distribute(tasks, config.worker_count)
        self.logger.tasks_planned(tasks=len(tasks), workers=config.worker_count)

        resolver = CategoryResolver(self.store, logger=self.logger)
        reconciler = BatchReconciler(self.store, HandleRegistry(), currency_code=config.currency_code)
        workers = [
            BatchWorker(
                worker_id=index + 1,
                feed=self.feed,
                resolver=resolver,
                reconciler=reconciler,
                stats=aggregator,
                total_tasks=len(tasks),
                logger=self.logger,
            )
            for index in range(config.worker_count)
        ]

        timed_out = await self._join(workers, groups)
        stats = aggregator.finalize()

        return SyncReport(
            status=RunState.SUCCEEDED,
            started_at=started_at,
            finished_at=_utc_now(),
            duration_seconds=aggregator.elapsed,
            total_items=total,
            task_count=len(tasks),
            worker_count=config.worker_count,
            stats=stats,
            timed_out=timed_out,
            error=f"Run timed out after {config.run_timeout}s" if timed_out else None,
        )

    async def _join(self, workers: List[BatchWorker], groups: List[List[BatchTask]]) -> bool:
        """
        Wait for every worker; returns True if ``run_timeout`` cut the wait short.

        Workers still running at the timeout are cancelled; upserts they
        already issued stay applied.
        """
        jobs = [
            asyncio.create_task(worker.run(tasks))
            for worker, tasks in zip(workers, groups)
        ]
        try:
            done, pending = await asyncio.wait(jobs, timeout=self.config.run_timeout)
        except asyncio.CancelledError:
            for job in jobs:
                job.cancel()
            await asyncio.gather(*jobs, return_exceptions=True)
            raise

        if pending:
            for job in pending:
                job.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self.logger.run_timeout(timeout=self.config.run_timeout)

        for job in done:
            # Re-raise a crash outside the per-task error handling
            job.result()

        return bool(pending)


@asynccontextmanager
async def sync_session(
    config: SyncConfig,
    store: CatalogStore,
    logger: Optional[StructuredLogger] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[SyncOrchestrator]:
    """
    Wire the HTTP client, fetch client and feed client into an orchestrator.

    The HTTP connection pool stays open for the lifetime of the session, so
    periodic triggers reuse it across runs.
    """
    logger = logger or StructuredLogger(level=config.log_level)
    async with AsyncHTTPClient(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        transport=transport,
    ) as http_client:
        fetcher = RetryingFetchClient(
            http_client,
            max_retries=config.max_retries,
            initial_delay=config.initial_backoff,
            max_delay=config.max_backoff,
            multiplier=config.backoff_multiplier,
            rate_limit_delay=config.rate_limit_backoff,
            max_retry_after=config.max_retry_after,
            request_delay=config.request_delay,
            logger=logger,
        )
        feed = FeedClient(fetcher, config.feed_url, page_size=config.page_size)
        yield SyncOrchestrator(config, feed, store, logger=logger)
