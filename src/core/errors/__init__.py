"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- ConsumerError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    ConsumerError,
    AuthError,
    TransientError,
    PermanentError,
    # Domain errors
    QueueOperationError,
    BatchDeleteError,
    PreprocessorError,
    WorkerDeliveryError,
    # Classification utilities
    classify_http_status,
    classify_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "ConsumerError",
    "AuthError",
    "TransientError",
    "PermanentError",
    # Domain errors
    "QueueOperationError",
    "BatchDeleteError",
    "PreprocessorError",
    "WorkerDeliveryError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
]
