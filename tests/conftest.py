"""
pytest configuration for the SQS relay tests.

Adds src directory to Python path for imports and sets up test environment.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

# Set test environment variables BEFORE any imports
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture(autouse=True)
def reset_log_context():
    """Keep log context and setup_logging() handlers from leaking between tests."""
    from core.logging import ConsoleFormatter, JSONFormatter, clear_log_context

    clear_log_context()
    yield
    clear_log_context()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, RotatingFileHandler) or isinstance(
            handler.formatter, (ConsoleFormatter, JSONFormatter)
        ):
            root_logger.removeHandler(handler)
            handler.close()
