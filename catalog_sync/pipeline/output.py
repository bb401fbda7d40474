"""JSON output formatter for sync run reports.

A report file holds the run summary, the aggregated counters and the
orchestrator status at the time the run finished:

    {
        "run": {
            "status": "succeeded",
            "started_at": "2026-01-07T10:00:00+00:00",
            "finished_at": "2026-01-07T10:00:04+00:00",
            "duration_seconds": 4.12,
            "total_items": 194,
            "tasks": 10,
            "workers": 4,
            "timed_out": false,
            "error": null
        },
        "stats": {"items_processed": 194, "created": 12, "updated": 182, ...},
        "status": {"is_running": false, "last_status": "succeeded", ...}
    }
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from catalog_sync.models.data_models import RunStatus, SyncReport


class JSONOutputFormatter:
    """Formats sync reports and run status as JSON-serializable dictionaries."""

    def format(self, report: SyncReport, status: Optional[RunStatus] = None) -> Dict[str, Any]:
        data = {
            "run": self._format_run(report),
            "stats": report.stats.to_dict(),
        }
        if status is not None:
            data["status"] = self.format_status(status)
        return data

    def _format_run(self, report: SyncReport) -> Dict[str, Any]:
        return {
            "status": report.status.value,
            "started_at": report.started_at,
            "finished_at": report.finished_at,
            "duration_seconds": round(report.duration_seconds, 2),
            "total_items": report.total_items,
            "tasks": report.task_count,
            "workers": report.worker_count,
            "timed_out": report.timed_out,
            "error": report.error,
        }

    def format_status(self, status: RunStatus) -> Dict[str, Any]:
        """Polling view of the orchestrator status."""
        return {
            "is_running": status.is_running,
            "last_run_at": status.last_run_at,
            "last_status": status.last_status.value,
            "last_error": status.last_error,
            "last_duration": round(status.last_duration, 2) if status.last_duration is not None else None,
            "stats": status.stats.to_dict() if status.stats else None,
        }

    def save(
        self,
        report: SyncReport,
        path: str = "out/sync_report.json",
        status: Optional[RunStatus] = None,
    ) -> None:
        """
        Save formatted report to a JSON file.

        Creates parent directories if they don't exist.
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.format(report, status), f, indent=2, ensure_ascii=False)
