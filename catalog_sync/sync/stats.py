"""Thread-safe aggregation of per-batch results into run statistics."""

import threading
import time

from catalog_sync.models.data_models import BatchResult, SyncStats


class StatsAggregator:
    """
    Collects BatchResults from all workers.

    Every mutation happens under one lock, so concurrent merges from worker
    tasks or threads never lose updates.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items_processed = 0
        self._created = 0
        self._updated = 0
        self._errors = 0
        self._categories_created = 0
        self._batches_processed = 0
        self._batches_failed = 0
        self._completed = 0
        self._start_time: float = 0.0
        self._end_time: float = 0.0

    def start_timer(self) -> None:
        """Start timing the run."""
        self._start_time = time.monotonic()

    def stop_timer(self) -> None:
        """Stop timing the run."""
        self._end_time = time.monotonic()

    @property
    def elapsed(self) -> float:
        end = self._end_time or time.monotonic()
        return end - self._start_time if self._start_time else 0.0

    def merge(self, result: BatchResult) -> int:
        """
        Add one batch outcome to the counters.

        Returns:
            Number of batches merged so far, this one included
        """
        with self._lock:
            self._errors += result.errors
            self._categories_created += result.categories_created
            if result.failed:
                self._batches_failed += 1
            else:
                self._items_processed += result.items
                self._created += result.created
                self._updated += result.updated
                self._batches_processed += 1
            self._completed += 1
            return self._completed

    def snapshot(self) -> SyncStats:
        """Current counters; safe to call while workers are still running."""
        with self._lock:
            return SyncStats(
                items_processed=self._items_processed,
                created=self._created,
                updated=self._updated,
                errors=self._errors,
                categories_created=self._categories_created,
                batches_processed=self._batches_processed,
                batches_failed=self._batches_failed,
            )

    def finalize(self) -> SyncStats:
        """Immutable summary; called once all workers have joined."""
        if not self._end_time:
            self.stop_timer()
        return self.snapshot()
