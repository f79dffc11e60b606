"""
SQS consumer: the coordinator's poll / dispatch / acknowledge loop.

Each iteration:
1. ReceiveMessage (long poll, up to 10 messages)
2. For every message, start a dispatch task: run the preprocessor if one
   is configured, then relay the envelope to every registered worker.
   Dispatch tasks are not awaited before moving on.
3. One DeleteMessageBatch for the whole batch, whatever happened to the
   individual dispatches.

Delivery is at-least-once: a crash after dispatch and before delete
causes the batch to be received (and dispatched) again.
"""

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Callable, List, Optional, Set

from core.errors import PreprocessorError
from core.logging import get_logger, log_exception, log_with_context
from sqs_relay.config import PollOptions
from sqs_relay.events import PREPROCESSOR_ERROR, EventEmitter, PreprocessorErrorEvent
from sqs_relay.gateway import SQSGateway
from sqs_relay.metrics import (
    poll_cycle_duration_seconds,
    record_preprocessor_error,
    update_polling_state,
)
from sqs_relay.relay import DispatchRelay, WorkerRegistry
from sqs_relay.schemas import DeleteEntry, ProcessedEnvelope, QueueMessage, RawEnvelope

logger = get_logger(__name__)

MessagePreprocessor = Callable[[QueueMessage], Any]


class PollingState(str, Enum):
    """Whether the poll loop keeps going at the top of its next iteration."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class SQSConsumer(EventEmitter):
    """
    Coordinator that relays SQS messages to a pool of workers.

    Emits SQS_ERROR (from the gateway), PREPROCESSOR_ERROR and
    RELAY_ERROR. None of these stop the loop; only pause_polling() does.

    Usage:
        >>> registry = WorkerRegistry()
        >>> consumer = SQSConsumer(
        ...     sqs_client=boto3.client("sqs"),
        ...     poll_options=PollOptions(queue_url=url),
        ...     registry=registry,
        ...     message_preprocessor=parse_body,
        ... )
        >>> consumer.on(SQS_ERROR, lambda evt: alert(evt.operation, evt.error))
        >>> await consumer.start_polling()  # runs until pause_polling()

    Args:
        sqs_client: boto3 SQS client (or anything with the same two methods)
        poll_options: ReceiveMessage parameters
        registry: Worker handles the relay sends to
        message_preprocessor: Optional callable run on each message before
            relay; may be sync or async
        max_batches: Stop after this many ReceiveMessage calls, empty or
            not (None = unlimited). Useful for testing.
        error_backoff_seconds: Sleep after a failed ReceiveMessage call
    """

    def __init__(
        self,
        sqs_client: Any,
        poll_options: PollOptions,
        registry: WorkerRegistry,
        message_preprocessor: Optional[MessagePreprocessor] = None,
        max_batches: Optional[int] = None,
        error_backoff_seconds: float = 1.0,
    ):
        super().__init__()
        self.poll_options = poll_options
        self.registry = registry
        self.message_preprocessor = message_preprocessor
        self.max_batches = max_batches
        self.error_backoff_seconds = error_backoff_seconds

        self._gateway = SQSGateway(sqs_client, poll_options, emitter=self)
        self._relay = DispatchRelay(registry, emitter=self)

        self._state = PollingState.INACTIVE
        self._loop_running = False
        self._batch_count = 0
        self._dispatch_tasks: Set[asyncio.Task] = set()

    @property
    def polling_state(self) -> PollingState:
        return self._state

    @property
    def is_polling(self) -> bool:
        """True while a poll loop is running, including its final cycle after a pause."""
        return self._loop_running

    @property
    def batches_processed(self) -> int:
        return self._batch_count

    async def start_polling(self) -> None:
        """
        Set ACTIVE and run the poll loop until paused.

        If a loop is already running on this consumer (including one that
        was paused but hasn't finished its current cycle), this only sets
        ACTIVE again and returns; a second loop is never started.
        """
        self._set_state(PollingState.ACTIVE)

        if self._loop_running:
            logger.warning("Poll loop already running, ignoring duplicate start call")
            return

        self._loop_running = True
        log_with_context(
            logger,
            logging.INFO,
            "Starting poll loop",
            queue_url=self.poll_options.queue_url,
            max_number_of_messages=self.poll_options.max_number_of_messages,
            wait_time_seconds=self.poll_options.wait_time_seconds,
            worker_count=len(self.registry),
        )

        try:
            while True:
                await self._poll_loop()
                await self._wait_for_dispatches()
                # resume_polling() may have landed while dispatches drained
                if self._state is not PollingState.ACTIVE:
                    break
        except asyncio.CancelledError:
            logger.info("Poll loop cancelled")
            raise
        finally:
            self._loop_running = False
            log_with_context(
                logger,
                logging.INFO,
                "Poll loop stopped",
                batches_processed=self._batch_count,
                polling_state=self._state.value,
            )

    def pause_polling(self) -> None:
        """Set INACTIVE. The current cycle finishes; no new receive is issued."""
        if self._state is PollingState.ACTIVE:
            logger.info("Pausing poll loop")
        self._set_state(PollingState.INACTIVE)

    async def resume_polling(self) -> None:
        """Start polling again, same as start_polling()."""
        logger.info("Resuming poll loop")
        await self.start_polling()

    def _set_state(self, state: PollingState) -> None:
        self._state = state
        update_polling_state(state is PollingState.ACTIVE)

    async def _poll_loop(self) -> None:
        while self._state is PollingState.ACTIVE:
            if self.max_batches is not None and self._batch_count >= self.max_batches:
                log_with_context(
                    logger,
                    logging.INFO,
                    "Reached max_batches limit, pausing",
                    batches_processed=self._batch_count,
                )
                self.pause_polling()
                break

            self._batch_count += 1
            started = time.perf_counter()

            messages = await self._gateway.receive()
            if messages is None:
                # Receive failed; already reported through SQS_ERROR
                if self.error_backoff_seconds > 0:
                    await asyncio.sleep(self.error_backoff_seconds)
                continue

            if not messages:
                continue

            entries = self._dispatch_batch(messages)
            await self._gateway.delete_batch(entries)
            poll_cycle_duration_seconds.observe(time.perf_counter() - started)

    def _dispatch_batch(self, messages: List[QueueMessage]) -> List[DeleteEntry]:
        """Start one dispatch task per message, in receive order."""
        entries: List[DeleteEntry] = []
        for message in messages:
            task = asyncio.create_task(self._process_message(message))
            self._dispatch_tasks.add(task)
            task.add_done_callback(self._on_dispatch_done)
            entries.append(DeleteEntry.from_message(message))
        return entries

    async def _process_message(self, message: QueueMessage) -> None:
        """Preprocess (if configured) and relay one message."""
        if self.message_preprocessor is None:
            self._relay.relay(RawEnvelope(message=message))
            return

        result = None
        try:
            result = self.message_preprocessor(message)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            result = None
            record_preprocessor_error()
            log_exception(
                logger,
                PreprocessorError(message.message_id, e),
                "Message preprocessor failed, relaying without result",
                level=logging.WARNING,
                message_id=message.message_id,
            )
            self.emit(PREPROCESSOR_ERROR, PreprocessorErrorEvent(error=e, message=message))

        self._relay.relay(ProcessedEnvelope(result=result))

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._dispatch_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_exception(logger, exc, "Dispatch task failed")

    async def _wait_for_dispatches(self) -> None:
        """Let in-flight dispatch tasks finish before the loop returns."""
        if self._dispatch_tasks:
            # Failures are logged by _on_dispatch_done
            await asyncio.gather(*list(self._dispatch_tasks), return_exceptions=True)
