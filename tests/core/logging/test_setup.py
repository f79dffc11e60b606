"""Tests for logging setup functions."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.logging.context import clear_log_context, get_log_context, set_log_context
from core.logging.setup import get_log_file_path, setup_logging


class TestGetLogFilePath:
    """Tests for get_log_file_path."""

    def test_domain_stage_and_instance(self):
        path = get_log_file_path(Path("logs"), domain="sqs", stage="coordinator", instance_id="p42")

        assert path.parts[0] == "logs"
        assert path.parts[1] == "sqs"
        assert path.name.startswith("sqs_coordinator_")
        assert path.name.endswith("_p42.log")

    def test_without_domain(self):
        path = get_log_file_path(Path("logs"))

        assert path.parent.parent == Path("logs")
        assert path.name.startswith("relay_")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_creates_console_and_file_handlers(self, tmp_path):
        setup_logging(domain="sqs", stage="coordinator", log_dir=tmp_path)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert sum(isinstance(h, RotatingFileHandler) for h in handlers) == 1

    def test_called_twice_does_not_duplicate_handlers(self, tmp_path):
        setup_logging(domain="sqs", stage="coordinator", log_dir=tmp_path)
        setup_logging(domain="sqs", stage="coordinator", log_dir=tmp_path)

        assert len(logging.getLogger().handlers) == 2

    def test_log_to_file_disabled(self, tmp_path):
        setup_logging(log_dir=tmp_path, log_to_file=False)

        assert len(logging.getLogger().handlers) == 1
        assert list(tmp_path.rglob("*.log")) == []

    def test_writes_json_lines_with_context(self, tmp_path):
        setup_logging(domain="sqs", stage="worker-1", worker_id="worker-1", log_dir=tmp_path)

        logging.getLogger("test.worker").info("Envelope handled", extra={"message_id": "m-1"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_files = list(tmp_path.rglob("*.log"))
        assert len(log_files) == 1
        assert "worker-1" in log_files[0].name
        content = log_files[0].read_text()
        assert '"msg": "Envelope handled"' in content
        assert '"worker_id": "worker-1"' in content
        assert '"message_id": "m-1"' in content

    def test_sets_log_context(self, tmp_path):
        setup_logging(domain="sqs", stage="coordinator", worker_id="coordinator", log_dir=tmp_path)

        ctx = get_log_context()
        assert ctx["domain"] == "sqs"
        assert ctx["stage"] == "coordinator"
        assert ctx["worker_id"] == "coordinator"

    def test_suppresses_noisy_loggers(self, tmp_path):
        """Noisy loggers are set to WARNING level."""
        setup_logging(log_dir=tmp_path, suppress_noisy=True)

        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_console_output(self, tmp_path, capsys):
        setup_logging(stage="coordinator", log_dir=tmp_path, console_level=logging.INFO)

        logging.getLogger("test").info("Console test")
        logging.getLogger("test").debug("Hidden debug")

        captured = capsys.readouterr()
        assert "Console test" in captured.out
        assert "[coordinator]" in captured.out
        assert "Hidden debug" not in captured.out


class TestLogContext:
    """Tests for context variable helpers."""

    def test_none_leaves_value_unchanged(self):
        set_log_context(stage="coordinator", cycle_id="c-1")
        set_log_context(worker_id="worker-1")

        ctx = get_log_context()
        assert ctx["stage"] == "coordinator"
        assert ctx["cycle_id"] == "c-1"
        assert ctx["worker_id"] == "worker-1"

    def test_clear(self):
        set_log_context(domain="sqs", stage="coordinator")

        clear_log_context()

        assert get_log_context() == {
            "domain": None,
            "stage": None,
            "cycle_id": None,
            "worker_id": None,
        }
