"""
Dispatch relay: fan-out of one envelope to every registered worker.

Workers are tracked in a WorkerRegistry. The pool adds a handle when it
spawns a process and removes it when the process exits; the relay only
iterates a snapshot of whatever is registered at send time.

Delivery is fire-and-forget: a put on the worker's bounded channel is
the whole contract. A full or closed channel is reported through
RELAY_ERROR and the remaining workers still receive the envelope. A
payload that cannot be pickled reaches no worker and is reported once
per worker.
"""

import logging
import pickle
import queue
import threading
from multiprocessing.reduction import ForkingPickler
from typing import Any, Dict, List, Optional, Union

from core.errors import WorkerDeliveryError
from core.logging import get_logger, log_exception
from sqs_relay.events import RELAY_ERROR, EventEmitter, RelayErrorEvent
from sqs_relay.metrics import record_relay, update_registered_workers
from sqs_relay.schemas import ProcessedEnvelope, RawEnvelope

logger = get_logger(__name__)

Envelope = Union[RawEnvelope, ProcessedEnvelope]


class WorkerHandle:
    """
    Coordinator-side handle to one worker.

    Args:
        worker_id: Stable identifier used in logs and events
        channel: Inbound channel of the worker; anything with put_nowait()
            (a multiprocessing.Queue for real workers)
        process: The worker's process object, if any
    """

    def __init__(self, worker_id: str, channel: Any, process: Any = None):
        self.worker_id = worker_id
        self.channel = channel
        self.process = process

    @property
    def pid(self) -> Optional[int]:
        return getattr(self.process, "pid", None)

    @property
    def is_alive(self) -> bool:
        if self.process is None:
            return True
        return self.process.is_alive()

    def send(self, obj: Any) -> None:
        """Put obj on the worker's channel without blocking.

        Raises:
            queue.Full: The channel is at capacity
            ValueError: The channel has been closed
        """
        self.channel.put_nowait(obj)

    def __repr__(self) -> str:
        return f"WorkerHandle(worker_id={self.worker_id!r}, pid={self.pid})"


class WorkerRegistry:
    """Thread-safe set of live worker handles keyed by worker_id."""

    def __init__(self) -> None:
        self._handles: Dict[str, WorkerHandle] = {}
        self._lock = threading.Lock()

    def add(self, handle: WorkerHandle) -> None:
        with self._lock:
            self._handles[handle.worker_id] = handle
            count = len(self._handles)
        update_registered_workers(count)

    def remove(self, worker_id: str) -> Optional[WorkerHandle]:
        with self._lock:
            handle = self._handles.pop(worker_id, None)
            count = len(self._handles)
        update_registered_workers(count)
        return handle

    def get(self, worker_id: str) -> Optional[WorkerHandle]:
        with self._lock:
            return self._handles.get(worker_id)

    def handles(self) -> List[WorkerHandle]:
        """Snapshot of registered handles."""
        with self._lock:
            return list(self._handles.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def __contains__(self, worker_id: object) -> bool:
        with self._lock:
            return worker_id in self._handles


class DispatchRelay:
    """
    Copies an envelope to every registered worker.

    Usage:
        >>> registry = WorkerRegistry()
        >>> relay = DispatchRelay(registry, emitter)
        >>> delivered = relay.relay(RawEnvelope(message=msg))
    """

    def __init__(self, registry: WorkerRegistry, emitter: EventEmitter):
        self.registry = registry
        self.emitter = emitter

    def relay(self, envelope: Envelope) -> int:
        """
        Send envelope to every registered worker.

        multiprocessing.Queue pickles items later, in a feeder thread, where
        a failure would only be printed. The wire dict is pickled once up
        front so an unpicklable payload is reported like any other delivery
        failure.

        Returns:
            Number of workers the envelope was placed for
        """
        wire = envelope.to_wire()
        handles = self.registry.handles()

        if handles:
            try:
                ForkingPickler.dumps(wire)
            except (pickle.PicklingError, TypeError, AttributeError) as e:
                for handle in handles:
                    self._report_failure(handle, envelope, e)
                return 0

        delivered = 0
        for handle in handles:
            try:
                handle.send(wire)
            except (queue.Full, ValueError, OSError) as e:
                self._report_failure(handle, envelope, e)
                continue

            record_relay(envelope.kind, success=True)
            delivered += 1

        if not handles:
            logger.debug("No workers registered, envelope dropped")

        return delivered

    def _report_failure(self, handle: WorkerHandle, envelope: Envelope, cause: Exception) -> None:
        record_relay(envelope.kind, success=False)
        error = WorkerDeliveryError(handle.worker_id, cause=cause)
        log_exception(
            logger,
            error,
            "Failed to relay envelope to worker",
            level=logging.WARNING,
            include_traceback=False,
            worker_id=handle.worker_id,
            envelope_kind=envelope.kind,
        )
        self.emitter.emit(
            RELAY_ERROR,
            RelayErrorEvent(error=error, worker_id=handle.worker_id, envelope=envelope),
        )
