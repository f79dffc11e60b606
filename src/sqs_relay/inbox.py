"""
Worker inbox: the worker-side end of the relay channel.

Each worker process owns one inbox reading its inbound channel. Valid
envelopes are re-emitted as SQS_MESSAGE, whichever variant they are.
The stop control message ends the listen loop. Anything else belongs to
the hosting application and is passed on as IPC_MESSAGE.
"""

import logging
import threading
from typing import Any, Optional

from core.logging import get_logger, log_with_context
from sqs_relay.events import IPC_MESSAGE, SQS_MESSAGE, EventEmitter
from sqs_relay.schemas import parse_envelope

logger = get_logger(__name__)

STOP_CONTROL = {"control": "stop"}


def is_stop_control(obj: Any) -> bool:
    return isinstance(obj, dict) and obj.get("control") == "stop" and "kind" not in obj


class WorkerInbox(EventEmitter):
    """
    Listener for envelopes relayed to this worker.

    Usage (inside a worker process):
        >>> inbox = WorkerInbox(channel, worker_id="worker-1")
        >>> @inbox.on(SQS_MESSAGE)
        ... def handle(envelope):
        ...     print(envelope.payload)
        >>> inbox.listen()  # blocks until the stop control message arrives

    Args:
        channel: Inbound channel; anything with a blocking get()
        worker_id: Identifier used in logs
    """

    def __init__(self, channel: Any, worker_id: Optional[str] = None):
        super().__init__()
        self.channel = channel
        self.worker_id = worker_id
        self._listening = False
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    @property
    def listening(self) -> bool:
        return self._listening or (self._thread is not None and self._thread.is_alive())

    @property
    def started(self) -> bool:
        """True once start() has launched a listener thread."""
        return self._thread is not None

    @property
    def stopped(self) -> bool:
        """True once the stop control message has been read."""
        return self._stopped

    def handle(self, obj: Any) -> bool:
        """
        Route one inbound item.

        Returns:
            False if obj was the stop control message, True otherwise
        """
        if is_stop_control(obj):
            return False

        envelope = parse_envelope(obj)
        if envelope is None:
            if not self.emit(IPC_MESSAGE, obj):
                logger.debug("Ignoring non-envelope message on worker channel")
            return True

        self.emit(SQS_MESSAGE, envelope)
        return True

    def listen(self) -> None:
        """Read the channel until the stop control message arrives."""
        if self._listening:
            logger.warning("Inbox already listening, ignoring duplicate listen call")
            return

        self._listening = True
        log_with_context(logger, logging.INFO, "Worker inbox listening", worker_id=self.worker_id)
        try:
            while True:
                obj = self.channel.get()
                if not self.handle(obj):
                    self._stopped = True
                    break
        except (EOFError, OSError) as e:
            # The coordinator went away and took the channel with it
            log_with_context(
                logger,
                logging.WARNING,
                "Worker channel closed",
                worker_id=self.worker_id,
                error_message=str(e),
            )
        finally:
            self._listening = False
            log_with_context(logger, logging.INFO, "Worker inbox stopped", worker_id=self.worker_id)

    def start(self) -> threading.Thread:
        """Run listen() in a daemon thread and return the thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(
            target=self.listen, name=f"inbox-{self.worker_id or 'worker'}", daemon=True
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
