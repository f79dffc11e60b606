"""
Exception types and error classification for the SQS relay.

Provides:
- ErrorCategory enum for handling decisions
- Typed exception hierarchy for consumer errors
- Error classification utilities
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should succeed on a later poll
                   (e.g., network timeouts, throttling, 5xx responses)
        AUTH: Credential failures (e.g., expired or invalid security token)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., queue does not exist, access denied, bad request)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class ConsumerError(Exception):
    """
    Base exception for all consumer errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether a later attempt may succeed."""
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class AuthError(ConsumerError):
    """Credentials rejected or expired."""

    category = ErrorCategory.AUTH


class TransientError(ConsumerError):
    """Base class for transient errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(ConsumerError):
    """Base class for non-retriable errors."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Domain Errors
# =============================================================================


class QueueOperationError(ConsumerError):
    """A call against the remote queue failed."""

    def __init__(
        self,
        operation: str,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, cause, context)
        self.operation = operation
        if cause is not None:
            self.category = classify_exception(cause)


class BatchDeleteError(QueueOperationError):
    """DeleteMessageBatch succeeded as a call but rejected some entries."""

    def __init__(self, failed: List[Dict[str, Any]]):
        ids = ", ".join(str(f.get("Id")) for f in failed)
        super().__init__(
            "DeleteMessageBatch",
            f"{len(failed)} entries failed to delete: {ids}",
            context={"failed": failed},
        )
        self.failed = failed
        # Sender faults (bad receipt handle) never succeed on retry
        if any(f.get("SenderFault") for f in failed):
            self.category = ErrorCategory.PERMANENT
        else:
            self.category = ErrorCategory.TRANSIENT


class PreprocessorError(ConsumerError):
    """The caller-supplied message preprocessor raised."""

    def __init__(self, message_id: Optional[str], cause: Exception):
        super().__init__(
            f"Preprocessor failed for message {message_id}",
            cause=cause,
            context={"message_id": message_id},
        )
        self.message_id = message_id


class WorkerDeliveryError(TransientError):
    """An envelope could not be placed on a worker's channel."""

    def __init__(self, worker_id: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Delivery to worker {worker_id} failed",
            cause=cause,
            context={"worker_id": worker_id},
        )
        self.worker_id = worker_id


# =============================================================================
# Error Classification Utilities
# =============================================================================

# botocore ClientError codes, lowercased
_TRANSIENT_CODES = (
    "throttling",
    "throttlingexception",
    "requestthrottled",
    "requestthrottledexception",
    "overlimit",
    "kmsthrottlingexception",
    "serviceunavailable",
    "internalerror",
    "internalfailure",
    "requesttimeout",
)

_AUTH_CODES = (
    "expiredtoken",
    "expiredtokenexception",
    "invalidclienttokenid",
    "unrecognizedclientexception",
    "signaturedoesnotmatch",
    "incompletesignature",
    "missingauthenticationtoken",
)

_PERMANENT_CODES = (
    "accessdenied",
    "accessdeniedexception",
    "aws.simplequeueservice.nonexistentqueue",
    "queuedoesnotexist",
    "invalidparametervalue",
    "invalidattributename",
    "receipthandleisinvalid",
    "emptybatchrequest",
    "toomanyentriesinbatchrequest",
    "batchentryidsnotdistinct",
    "invalidbatchentryid",
    "validationerror",
)


def _client_error_code(exc: Exception) -> Optional[str]:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    code = response.get("Error", {}).get("Code")
    return code.lower() if code else None


def _client_error_status(exc: Exception) -> Optional[int]:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if status_code in (401,):
        return ErrorCategory.AUTH
    if status_code == 429:
        return ErrorCategory.TRANSIENT
    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT
    if status_code >= 500:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """
    Classify an exception into error category.

    Understands botocore ClientError responses as well as generic
    connection and timeout failures.

    Args:
        exc: Exception to classify

    Returns:
        Appropriate ErrorCategory
    """
    if isinstance(exc, ConsumerError):
        return exc.category

    code = _client_error_code(exc)
    if code:
        if code in _TRANSIENT_CODES:
            return ErrorCategory.TRANSIENT
        if code in _AUTH_CODES:
            return ErrorCategory.AUTH
        if code in _PERMANENT_CODES:
            return ErrorCategory.PERMANENT
        status = _client_error_status(exc)
        if status:
            return classify_http_status(status)
        return ErrorCategory.UNKNOWN

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    # botocore EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError etc.
    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "connection aborted",
        "could not connect",
        "name resolution",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timed out" in exc_str:
        return ErrorCategory.TRANSIENT

    if "nocredentialserror" in exc_type or "unable to locate credentials" in exc_str:
        return ErrorCategory.AUTH

    if "throttl" in exc_str or "rate exceeded" in exc_str:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN
