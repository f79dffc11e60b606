"""Tests for log formatters and logging helpers."""

import json
import logging
import sys

import pytest

from core.errors import PermanentError
from core.logging import (
    ConsoleFormatter,
    JSONFormatter,
    log_exception,
    log_with_context,
    set_log_context,
)


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "test.logger"
        assert entry["msg"] == "hello"
        assert entry["ts"].endswith("Z")
        assert "file" not in entry

    def test_whitelisted_extras_only(self):
        record = make_record(queue_url="https://sqs.test/q", message_count=3, password="x")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["queue_url"] == "https://sqs.test/q"
        assert entry["message_count"] == 3
        assert "password" not in entry

    def test_context_injected(self):
        set_log_context(domain="sqs", stage="coordinator", worker_id="coordinator")

        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["domain"] == "sqs"
        assert entry["stage"] == "coordinator"
        assert entry["worker_id"] == "coordinator"

    def test_worker_id_extra_wins(self):
        set_log_context(worker_id="coordinator")

        entry = json.loads(JSONFormatter().format(make_record(worker_id="worker-2")))

        assert entry["worker_id"] == "worker-2"

    def test_error_includes_file_and_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["file"].endswith(":10")
        assert "ValueError: boom" in entry["exception"]


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_includes_stage_and_message_id(self):
        set_log_context(stage="worker-1")

        line = ConsoleFormatter().format(make_record(message_id="0123456789abcdef"))

        assert "[worker-1]" in line
        assert "[01234567] hello" in line

    def test_plain_message(self):
        line = ConsoleFormatter().format(make_record())

        assert line.endswith(" - INFO - hello")


class TestLogHelpers:
    """Tests for log_with_context and log_exception."""

    @pytest.fixture
    def logger(self):
        return logging.getLogger("test.helpers")

    def test_log_with_context_sets_extras(self, logger, caplog):
        with caplog.at_level(logging.INFO, logger="test.helpers"):
            log_with_context(logger, logging.INFO, "Batch deleted", entries=2)

        assert caplog.records[-1].entries == 2

    def test_log_exception_extracts_category(self, logger, caplog):
        with caplog.at_level(logging.WARNING, logger="test.helpers"):
            log_exception(
                logger,
                PermanentError("queue gone"),
                "Receive failed",
                level=logging.WARNING,
                include_traceback=False,
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.error_category == "permanent"
        assert record.error_message == "queue gone"
        assert record.exc_info is None

    def test_log_exception_truncates_message(self, logger, caplog):
        with caplog.at_level(logging.ERROR, logger="test.helpers"):
            log_exception(logger, RuntimeError("x" * 600), "Failed")

        record = caplog.records[-1]
        assert len(record.error_message) == 503
        assert record.exc_info is not None
