"""
Structured logging module.

Provides JSON logging with context propagation for the coordinator and
its worker processes.
"""

from core.logging.context import clear_log_context, get_log_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import get_log_file_path, setup_logging
from core.logging.utilities import get_logger, log_exception, log_with_context

__all__ = [
    "setup_logging",
    "get_log_file_path",
    "get_logger",
    "log_with_context",
    "log_exception",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "JSONFormatter",
    "ConsoleFormatter",
]
