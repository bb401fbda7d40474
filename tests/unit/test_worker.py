"""Unit tests for BatchWorker."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_sync.errors import CatalogStoreError, FetchExhausted
from catalog_sync.models.data_models import BatchTask
from catalog_sync.pipeline.worker import BatchWorker
from catalog_sync.store.memory import InMemoryCatalogStore
from catalog_sync.sync.categories import CategoryResolver
from catalog_sync.sync.reconciler import BatchReconciler
from catalog_sync.sync.stats import StatsAggregator


def make_worker(feed, store=None, logger=None, total_tasks=3):
    if store is None:
        store = InMemoryCatalogStore()
    return BatchWorker(
        worker_id=1,
        feed=feed,
        resolver=CategoryResolver(store),
        reconciler=BatchReconciler(store),
        stats=StatsAggregator(),
        total_tasks=total_tasks,
        logger=logger,
    )


@pytest.fixture
def feed(make_item):
    """Feed stub returning items ``offset + 1 .. offset + size``."""
    feed = MagicMock()

    async def fetch_batch_counting(task):
        return [make_item(i) for i in range(task.offset + 1, task.offset + task.size + 1)], 0

    feed.fetch_batch_counting = AsyncMock(side_effect=fetch_batch_counting)
    return feed


class TestBatchWorker:

    @pytest.mark.asyncio
    async def test_process_creates_items_and_categories(self, feed):
        worker = make_worker(feed)

        result = await worker.process(BatchTask(offset=0, size=3))

        assert not result.failed
        assert (result.items, result.created, result.updated) == (3, 3, 0)
        assert result.categories_created == 1

    @pytest.mark.asyncio
    async def test_run_processes_tasks_in_order(self, feed, logger):
        worker = make_worker(feed, logger=logger)
        tasks = [BatchTask(0, 3), BatchTask(6, 3), BatchTask(12, 2)]

        await worker.run(tasks)

        assert [call.args[0] for call in feed.fetch_batch_counting.await_args_list] == tasks
        stats = worker.stats.finalize()
        assert stats.created == 8
        assert stats.batches_processed == 3

    @pytest.mark.asyncio
    async def test_fetch_failure_counts_one_error_and_continues(self, feed, make_item):
        feed.fetch_batch_counting = AsyncMock(side_effect=[
            FetchExhausted("http://feed.test/products", 3, RuntimeError("boom")),
            ([make_item(4)], 0),
        ])
        worker = make_worker(feed)

        await worker.run([BatchTask(0, 3), BatchTask(3, 1)])

        stats = worker.stats.finalize()
        assert stats.errors == 1
        assert stats.batches_failed == 1
        assert stats.created == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_result(self, feed):
        feed.fetch_batch_counting = AsyncMock(side_effect=FetchExhausted("http://feed.test/products", 3, None))

        result = await make_worker(feed).process(BatchTask(0, 3))

        assert result.failed
        assert result.errors == 1
        assert result.error.startswith("Fetch error:")

    @pytest.mark.asyncio
    async def test_upsert_failure_counts_every_item(self, feed):
        store = InMemoryCatalogStore()
        store.upsert = AsyncMock(side_effect=CatalogStoreError("catalog unavailable"))

        result = await make_worker(feed, store=store).process(BatchTask(0, 3))

        assert result.failed
        assert result.errors == 3
        assert result.items == 3
        assert result.categories_created == 1

    @pytest.mark.asyncio
    async def test_rejected_entries_count_as_errors_without_failing(self, feed, make_item):
        feed.fetch_batch_counting = AsyncMock(return_value=([make_item(1), make_item(3)], 1))
        worker = make_worker(feed)

        await worker.run([BatchTask(0, 3)])

        stats = worker.stats.finalize()
        assert stats.created == 2
        assert stats.errors == 1
        assert stats.batches_failed == 0

    @pytest.mark.asyncio
    async def test_upsert_failure_also_counts_rejected_entries(self, feed, make_item):
        feed.fetch_batch_counting = AsyncMock(return_value=([make_item(1), make_item(2)], 1))
        store = InMemoryCatalogStore()
        store.upsert = AsyncMock(side_effect=CatalogStoreError("catalog unavailable"))

        result = await make_worker(feed, store=store).process(BatchTask(0, 3))

        assert result.failed
        assert result.errors == 3

    @pytest.mark.asyncio
    async def test_empty_task_list(self, feed):
        worker = make_worker(feed)

        await worker.run([])

        feed.fetch_batch_counting.assert_not_called()
        assert worker.stats.finalize().batches_processed == 0

    @pytest.mark.asyncio
    async def test_logs_progress(self, feed, logger, caplog):
        worker = make_worker(feed, logger=logger, total_tasks=1)

        with caplog.at_level("INFO", logger="catalog_sync.tests"):
            await worker.run([BatchTask(0, 2)])

        messages = [r.getMessage() for r in caplog.records]
        assert any('"batch_completed"' in m and '"progress": "1/1"' in m for m in messages)
