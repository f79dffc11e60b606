"""
Worker pool: spawns worker processes and keeps the relay registry in sync.

Each worker gets its own bounded multiprocessing.Queue as inbound
channel. Inside the worker, a WorkerInbox reads that channel and the
application target registers its SQS_MESSAGE handlers on the inbox.

The target is either an import path ("package.module:function") or a
picklable top-level callable. It is called once with the inbox and may
return immediately after registering handlers; the worker then listens
until the stop control message arrives.
"""

import asyncio
import importlib
import logging
import multiprocessing
import queue
import signal
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from core.logging import get_logger, log_exception, log_with_context, setup_logging
from sqs_relay.inbox import STOP_CONTROL, WorkerInbox
from sqs_relay.relay import WorkerHandle, WorkerRegistry

logger = get_logger(__name__)

WorkerTarget = Union[str, Callable[[WorkerInbox], Any]]


def resolve_target(target: WorkerTarget) -> Callable[[WorkerInbox], Any]:
    """Resolve "package.module:function" to the callable it names."""
    if callable(target):
        return target
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Worker target must look like 'module:function', got {target!r}")
    module = importlib.import_module(module_name)
    func = getattr(module, attr, None)
    if not callable(func):
        raise ValueError(f"Worker target {target!r} is not callable")
    return func


def _worker_main(
    worker_id: str,
    channel: Any,
    target: WorkerTarget,
    log_settings: Optional[Dict[str, Any]],
) -> None:
    """Entry point of a worker process."""
    # Ctrl+C reaches the whole process group; the coordinator decides
    # when workers stop by sending the stop control message.
    signal.signal(signal.SIGINT, signal.SIG_IGN)

    if log_settings is not None:
        setup_logging(stage=worker_id, worker_id=worker_id, **log_settings)
    worker_logger = get_logger(__name__)

    inbox = WorkerInbox(channel, worker_id=worker_id)
    resolve_target(target)(inbox)

    if inbox.started:
        # Target started its own listener thread
        inbox.join()
    elif not inbox.stopped:
        inbox.listen()

    log_with_context(worker_logger, logging.INFO, "Worker exiting", worker_id=worker_id)


class WorkerPool:
    """
    Fixed-size pool of worker processes.

    Usage:
        >>> registry = WorkerRegistry()
        >>> pool = WorkerPool("myapp.handlers:register", size=4, registry=registry)
        >>> pool.start()
        >>> supervisor = asyncio.create_task(pool.supervise(interval=5.0))
        >>> ...
        >>> pool.shutdown()

    Args:
        target: Worker target (import path or picklable callable)
        size: Number of worker processes
        registry: Registry the relay iterates
        queue_size: Capacity of each worker's inbound channel
        mp_context: multiprocessing start method ("spawn", "fork", "forkserver")
        log_settings: Keyword arguments for setup_logging() in each worker,
            or None to leave worker logging unconfigured
        min_uptime_seconds: A worker that exits sooner than this after
            being spawned counts as a rapid exit
        max_rapid_exits: Consecutive rapid exits tolerated before the
            supervisor stops respawning
    """

    def __init__(
        self,
        target: WorkerTarget,
        size: int,
        registry: WorkerRegistry,
        queue_size: int = 1000,
        mp_context: str = "spawn",
        log_settings: Optional[Dict[str, Any]] = None,
        min_uptime_seconds: float = 10.0,
        max_rapid_exits: int = 5,
    ):
        if size < 1:
            raise ValueError(f"Worker pool size must be at least 1, got {size}")
        if queue_size < 1:
            raise ValueError(f"Worker queue size must be at least 1, got {queue_size}")

        self.target = target
        self.size = size
        self.registry = registry
        self.queue_size = queue_size
        self.log_settings = log_settings
        self.min_uptime_seconds = min_uptime_seconds
        self.max_rapid_exits = max_rapid_exits
        self._ctx = multiprocessing.get_context(mp_context)
        self._next_index = 0
        self._running = False
        self._spawned_at: Dict[str, float] = {}
        self._rapid_exits = 0
        self._respawn_halted = False

    def start(self) -> List[WorkerHandle]:
        """Spawn `size` workers and register them."""
        if self._running:
            logger.warning("Worker pool already started, ignoring duplicate start call")
            return self.registry.handles()

        # Fail fast in the coordinator rather than in every child
        if isinstance(self.target, str):
            resolve_target(self.target)

        self._running = True
        handles = [self.spawn_worker() for _ in range(self.size)]
        log_with_context(
            logger,
            logging.INFO,
            "Worker pool started",
            worker_count=len(handles),
            queue_size=self.queue_size,
        )
        return handles

    def spawn_worker(self) -> WorkerHandle:
        """Start one worker process and register its handle."""
        self._next_index += 1
        worker_id = f"worker-{self._next_index}"
        channel = self._ctx.Queue(maxsize=self.queue_size)
        process = self._ctx.Process(
            target=_worker_main,
            args=(worker_id, channel, self.target, self.log_settings),
            name=worker_id,
            daemon=True,
        )
        process.start()
        self._spawned_at[worker_id] = time.monotonic()

        handle = WorkerHandle(worker_id, channel, process)
        self.registry.add(handle)
        log_with_context(
            logger, logging.INFO, "Worker started", worker_id=worker_id, pid=process.pid
        )
        return handle

    def reap(self) -> List[str]:
        """Unregister workers whose process has exited. Returns their ids."""
        exited = []
        for handle in self.registry.handles():
            if handle.is_alive:
                continue
            self.registry.remove(handle.worker_id)
            self._close_channel(handle)
            exited.append(handle.worker_id)
            log_with_context(
                logger,
                logging.WARNING,
                "Worker exited",
                worker_id=handle.worker_id,
                pid=handle.pid,
                exitcode=getattr(handle.process, "exitcode", None),
            )
        return exited

    @property
    def respawn_halted(self) -> bool:
        """True once rapid exits made the supervisor give up respawning."""
        return self._respawn_halted

    async def supervise(self, interval: float = 5.0, respawn: bool = True) -> None:
        """
        Reap exited workers every `interval` seconds until shutdown.

        With respawn, each exited worker is replaced. A worker that dies
        within min_uptime_seconds of its spawn is a rapid exit; after more
        than max_rapid_exits of those in a row respawning stops.
        """
        while self._running:
            await asyncio.sleep(interval)
            if not self._running:
                break
            exited = self.reap()
            if not respawn or self._respawn_halted:
                continue
            for worker_id in exited:
                if not self._running or not self._record_exit(worker_id):
                    break
                self.spawn_worker()

    def _record_exit(self, worker_id: str) -> bool:
        """Track rapid exits. Returns False once respawning should stop."""
        spawned_at = self._spawned_at.pop(worker_id, None)
        uptime = time.monotonic() - spawned_at if spawned_at is not None else None
        if uptime is not None and uptime < self.min_uptime_seconds:
            self._rapid_exits += 1
        else:
            self._rapid_exits = 0

        if self._rapid_exits > self.max_rapid_exits:
            self._respawn_halted = True
            log_with_context(
                logger,
                logging.ERROR,
                "Workers keep exiting right after start, no longer respawning",
                worker_id=worker_id,
                worker_count=len(self.registry),
            )
            return False
        return True

    def send(self, worker_id: str, obj: Any) -> bool:
        """Put application traffic on one worker's channel."""
        handle = self.registry.get(worker_id)
        if handle is None:
            return False
        handle.send(obj)
        return True

    def broadcast(self, obj: Any) -> int:
        """Put application traffic on every worker's channel."""
        sent = 0
        for handle in self.registry.handles():
            handle.send(obj)
            sent += 1
        return sent

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop every worker: stop control message, join, then terminate."""
        self._running = False
        handles = self.registry.handles()

        for handle in handles:
            try:
                handle.channel.put(STOP_CONTROL, timeout=timeout)
            except (queue.Full, ValueError, OSError) as e:
                log_exception(
                    logger,
                    e,
                    "Could not send stop to worker",
                    level=logging.WARNING,
                    include_traceback=False,
                    worker_id=handle.worker_id,
                )

        for handle in handles:
            process = handle.process
            if process is not None:
                process.join(timeout)
                if process.is_alive():
                    log_with_context(
                        logger,
                        logging.WARNING,
                        "Worker did not stop in time, terminating",
                        worker_id=handle.worker_id,
                        pid=process.pid,
                    )
                    process.terminate()
                    process.join(timeout)
            self.registry.remove(handle.worker_id)
            self._spawned_at.pop(handle.worker_id, None)
            self._close_channel(handle)

        log_with_context(logger, logging.INFO, "Worker pool stopped", worker_count=len(handles))

    @staticmethod
    def _close_channel(handle: WorkerHandle) -> None:
        close = getattr(handle.channel, "close", None)
        if close is None:
            return
        close()
        # A dead reader can leave buffered items; don't block exit on the feeder thread
        cancel = getattr(handle.channel, "cancel_join_thread", None)
        if cancel is not None:
            cancel()


def default_log_settings(log_dir: Optional[Path], level: int, json_format: bool) -> Dict[str, Any]:
    """setup_logging() arguments shared by the coordinator and its workers."""
    return {
        "domain": "sqs",
        "log_dir": log_dir,
        "console_level": level,
        "json_format": json_format,
        "use_instance_id": True,
    }
