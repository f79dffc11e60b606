"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from core.logging.context import get_log_context


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Queue
        "queue_url",
        "operation",
        "message_id",
        "message_count",
        "batch_size",
        "entries",
        "failed_count",
        "max_number_of_messages",
        "wait_time_seconds",
        "polling_state",
        "batches_processed",
        # Relay / workers
        "envelope_kind",
        "worker_count",
        "delivered",
        "pid",
        "exitcode",
        "queue_size",
        # Errors
        "error_category",
        "error_message",
        "event",
        # Timing
        "duration_ms",
    ]

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        ctx = get_log_context()
        for key in ("domain", "stage", "cycle_id"):
            if ctx[key]:
                log_entry[key] = ctx[key]

        # Explicit worker_id extra wins over the process context
        worker_id = getattr(record, "worker_id", None) or ctx["worker_id"]
        if worker_id:
            log_entry["worker_id"] = worker_id

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]

        if ctx["stage"]:
            parts.append(f"[{ctx['stage']}]")
        if ctx["worker_id"]:
            parts.append(f"[{ctx['worker_id']}]")

        prefix = " - ".join(parts)

        message_id = getattr(record, "message_id", None)
        if message_id:
            return f"{prefix} - [{str(message_id)[:8]}] {record.getMessage()}"

        return f"{prefix} - {record.getMessage()}"
