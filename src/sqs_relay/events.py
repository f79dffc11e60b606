"""
Events emitted by the consumer, relay and worker inbox.

Handlers are plain callables registered with EventEmitter.on(). They run
synchronously in the emitting context; an exception raised by a handler
is logged and never propagates into the poll loop or the inbox.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.errors import ErrorCategory
from core.logging import get_logger, log_exception

logger = get_logger(__name__)

# Worker side
SQS_MESSAGE = "sqs_message"
IPC_MESSAGE = "ipc_message"

# Coordinator side
SQS_ERROR = "sqs_error"
PREPROCESSOR_ERROR = "preprocessor_error"
RELAY_ERROR = "relay_error"

# Operation names carried by SQS_ERROR
RECEIVE_MESSAGE = "ReceiveMessage"
DELETE_MESSAGE_BATCH = "DeleteMessageBatch"

Handler = Callable[[Any], None]


@dataclass
class SQSErrorEvent:
    """Payload of SQS_ERROR: a queue call failed."""

    error: Exception
    operation: str
    category: ErrorCategory = ErrorCategory.UNKNOWN


@dataclass
class PreprocessorErrorEvent:
    """Payload of PREPROCESSOR_ERROR. message is the original QueueMessage."""

    error: Exception
    message: Any


@dataclass
class RelayErrorEvent:
    """Payload of RELAY_ERROR: an envelope did not reach one worker."""

    error: Exception
    worker_id: str
    envelope: Any


class EventEmitter:
    """Minimal named-event dispatcher.

    Usage:
        >>> emitter = EventEmitter()
        >>> emitter.on(SQS_ERROR, lambda evt: print(evt.operation))
        >>> emitter.emit(SQS_ERROR, SQSErrorEvent(RuntimeError("x"), RECEIVE_MESSAGE))
        ReceiveMessage
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._handlers_lock = threading.Lock()

    def on(self, event: str, handler: Optional[Handler] = None):
        """Register handler for event. Usable as a decorator when handler is omitted."""
        if handler is None:

            def decorator(func: Handler) -> Handler:
                self.on(event, func)
                return func

            return decorator

        with self._handlers_lock:
            self._handlers.setdefault(event, []).append(handler)
        return handler

    def off(self, event: str, handler: Handler) -> None:
        with self._handlers_lock:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        with self._handlers_lock:
            return len(self._handlers.get(event, []))

    def emit(self, event: str, payload: Any = None) -> bool:
        """Call every handler for event. Returns False when nobody listens."""
        with self._handlers_lock:
            handlers = list(self._handlers.get(event, []))

        if not handlers:
            return False

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    "Error in event handler",
                    level=logging.WARNING,
                    event=event,
                )
        return True
