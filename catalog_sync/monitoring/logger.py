"""Structured logging for sync runs."""

import json
import logging
from typing import Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "catalog_sync", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: str = "info", **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, worker, offset, size, attempt, delay, status,
                      created, updated, errors, elapsed_ms
        """
        log_data = {"event": event, **kwargs}
        getattr(self.logger, level)(json.dumps(log_data, default=str))

    def run_started(self, feed_url: str, workers: int, batch_size: int) -> None:
        self.log("run_started", feed_url=feed_url, workers=workers, batch_size=batch_size)

    def probe_complete(self, reported_total: int, total: int) -> None:
        self.log("probe_complete", reported_total=reported_total, total=total)

    def probe_failed(self, error: str) -> None:
        self.log("probe_failed", level="error", error=error)

    def tasks_planned(self, tasks: int, workers: int) -> None:
        self.log("tasks_planned", tasks=tasks, workers=workers)

    def worker_started(self, worker: int, tasks: int) -> None:
        self.log("worker_started", worker=worker, tasks=tasks)

    def worker_finished(self, worker: int, tasks: int) -> None:
        self.log("worker_finished", worker=worker, tasks=tasks)

    def fetch_retry(
        self,
        url: str,
        attempt: int,
        max_attempts: int,
        delay: float,
        status: Optional[int],
        error: str,
    ) -> None:
        self.log(
            "fetch_retry",
            level="warning",
            url=url,
            attempt=attempt,
            max_attempts=max_attempts,
            delay=delay,
            status=status,
            error=error,
        )

    def category_create_failed(self, slugs: list, error: str) -> None:
        self.log("category_create_failed", level="warning", slugs=slugs, error=error)

    def batch_completed(
        self,
        worker: int,
        offset: int,
        items: int,
        created: int,
        updated: int,
        errors: int,
        completed: int,
        total: int,
        elapsed_ms: float,
    ) -> None:
        self.log(
            "batch_completed",
            worker=worker,
            offset=offset,
            items=items,
            created=created,
            updated=updated,
            errors=errors,
            progress=f"{completed}/{total}",
            elapsed_ms=elapsed_ms,
        )

    def batch_failed(self, worker: int, offset: int, error: str) -> None:
        self.log("batch_failed", level="error", worker=worker, offset=offset, error=error)

    def run_rejected(self, reason: str) -> None:
        self.log("run_rejected", level="warning", reason=reason)

    def run_timeout(self, timeout: float) -> None:
        self.log("run_timeout", level="warning", timeout=timeout)

    def run_finished(self, status: str, duration: float, stats: dict) -> None:
        self.log("run_finished", status=status, duration=round(duration, 3), **stats)
