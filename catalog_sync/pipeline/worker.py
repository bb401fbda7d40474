"""Sync worker: processes its assigned batch tasks one after another."""

import asyncio
from typing import List, Optional

from catalog_sync.fetcher.feed_client import FeedClient
from catalog_sync.models.data_models import BatchResult, BatchTask
from catalog_sync.monitoring.logger import StructuredLogger
from catalog_sync.sync.categories import CategoryResolver
from catalog_sync.sync.reconciler import BatchReconciler
from catalog_sync.sync.stats import StatsAggregator


class BatchWorker:
    """
    Runs fetch -> resolve categories -> reconcile -> merge stats for each task.

    A task's failure is recorded in the stats and never stops the worker;
    the next task starts only after the previous one is fully recorded.
    """

    def __init__(
        self,
        worker_id: int,
        feed: FeedClient,
        resolver: CategoryResolver,
        reconciler: BatchReconciler,
        stats: StatsAggregator,
        total_tasks: int,
        logger: Optional[StructuredLogger] = None,
    ):
        self.worker_id = worker_id
        self.feed = feed
        self.resolver = resolver
        self.reconciler = reconciler
        self.stats = stats
        self.total_tasks = total_tasks
        self.logger = logger

    async def run(self, tasks: List[BatchTask]) -> None:
        """Process ``tasks`` strictly in order."""
        if self.logger:
            self.logger.worker_started(worker=self.worker_id, tasks=len(tasks))

        for task in tasks:
            start = asyncio.get_running_loop().time()
            result = await self.process(task)
            completed = self.stats.merge(result)
            elapsed_ms = (asyncio.get_running_loop().time() - start) * 1000

            if not self.logger:
                continue
            if result.failed:
                self.logger.batch_failed(worker=self.worker_id, offset=task.offset, error=result.error)
            else:
                self.logger.batch_completed(
                    worker=self.worker_id,
                    offset=task.offset,
                    items=result.items,
                    created=result.created,
                    updated=result.updated,
                    errors=result.errors,
                    completed=completed,
                    total=self.total_tasks,
                    elapsed_ms=round(elapsed_ms, 1),
                )

        if self.logger:
            self.logger.worker_finished(worker=self.worker_id, tasks=len(tasks))

    async def process(self, task: BatchTask) -> BatchResult:
        """
        Process a single task.

        A fetch failure counts as one error; a failure after the items were
        fetched counts every item of the batch as an error. Feed entries
        rejected as invalid count one error each and do not fail the batch.
        """
        try:
            items, rejected = await self.feed.fetch_batch_counting(task)
        except Exception as e:
            return BatchResult(
                offset=task.offset,
                size=task.size,
                errors=1,
                failed=True,
                error=f"Fetch error: {e}",
            )

        categories_created = 0
        try:
            category_map, categories_created = await self.resolver.resolve_counting(
                {item.category for item in items}
            )
            outcome = await self.reconciler.reconcile(items, category_map, offset=task.offset)
        except Exception as e:
            return BatchResult(
                offset=task.offset,
                size=task.size,
                items=len(items),
                errors=len(items) + rejected,
                categories_created=categories_created,
                failed=True,
                error=str(e),
            )

        return BatchResult(
            offset=task.offset,
            size=task.size,
            items=len(items),
            created=outcome.created,
            updated=outcome.updated,
            errors=rejected,
            categories_created=categories_created,
        )
