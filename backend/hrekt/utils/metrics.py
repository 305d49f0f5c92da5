"""
Scan Metrics & Structured Logging

Provides:
  - ``JSONFormatter``  – single-line JSON log formatter for ``--json-logs``
  - ``ScanMetrics``    – in-process counters for one probing run
"""
from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# JSON log formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "taskName",
))


class JSONFormatter(logging.Formatter):
    """
    Emit log records as single-line JSON objects.

    Compatible with most structured-log ingestion pipelines
    (Datadog, ELK, GCP Logging, etc.).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Attach extra structured fields added by callers
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# ScanMetrics – per-run accumulator
# ---------------------------------------------------------------------------

class ScanMetrics:
    """
    Collects counters for a single probing run.

    Workers share one instance; all updates happen on the event loop thread
    so no locking is required::

        metrics = ScanMetrics().start()
        metrics.increment("jobs")
        metrics.increment("candidates", 2)
        ...
        metrics.stop()
        logger.info("done", extra={"scan_metrics": metrics.to_dict()})
    """

    COUNTERS = (
        "jobs",
        "send_errors",
        "candidates",
        "requests_failed",
        "path_rejected",
        "filtered",
        "tech_failed",
        "matches",
    )

    def __init__(self) -> None:
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None
        self._counters: Dict[str, int] = {name: 0 for name in self.COUNTERS}
        self.workers_started = 0
        self.workers_failed = 0

    def start(self) -> "ScanMetrics":
        self._start_time = time.monotonic()
        return self

    def stop(self) -> "ScanMetrics":
        self._stop_time = time.monotonic()
        return self

    @property
    def duration_seconds(self) -> Optional[float]:
        if self._start_time is None:
            return None
        end = self._stop_time if self._stop_time is not None else time.monotonic()
        return round(end - self._start_time, 3)

    def increment(self, name: str, amount: int = 1) -> None:
        """Increment integer counter *name* by *amount*."""
        self._counters[name] = self._counters.get(name, 0) + amount

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": self.duration_seconds,
            "workers_started": self.workers_started,
            "workers_failed": self.workers_failed,
            "counters": dict(self._counters),
        }

    def summary(self) -> str:
        return (
            f"{self.get('jobs')} jobs, {self.get('candidates')} candidates, "
            f"{self.get('matches')} matches in {self.duration_seconds}s"
        )
