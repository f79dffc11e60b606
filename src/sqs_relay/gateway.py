"""
Queue gateway: ReceiveMessage and DeleteMessageBatch against SQS.

The boto3 client is synchronous; each call runs in a worker thread so
the coordinator's event loop keeps running dispatch tasks while a long
poll is outstanding.

Failures never propagate: they are logged, counted, and emitted as
SQS_ERROR events, and the caller gets a sentinel return value instead.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from core.errors import BatchDeleteError, classify_exception
from core.logging import get_logger, log_exception, log_with_context
from sqs_relay.config import MAX_RECEIVE_BATCH, PollOptions
from sqs_relay.events import (
    DELETE_MESSAGE_BATCH,
    RECEIVE_MESSAGE,
    SQS_ERROR,
    EventEmitter,
    SQSErrorEvent,
)
from sqs_relay.metrics import record_deleted, record_received, record_sqs_error
from sqs_relay.schemas import DeleteEntry, QueueMessage

logger = get_logger(__name__)


class SQSGateway:
    """
    Thin async adapter over a boto3 SQS client.

    Usage:
        >>> client = boto3.client("sqs", region_name="eu-west-1")
        >>> gateway = SQSGateway(client, PollOptions(queue_url=url), emitter)
        >>> messages = await gateway.receive()
        >>> if messages:
        ...     await gateway.delete_batch([DeleteEntry.from_message(m) for m in messages])
    """

    def __init__(self, sqs_client: Any, poll_options: PollOptions, emitter: EventEmitter):
        self.sqs_client = sqs_client
        self.poll_options = poll_options
        self.emitter = emitter

    @property
    def queue_url(self) -> str:
        return self.poll_options.queue_url

    async def receive(self) -> Optional[List[QueueMessage]]:
        """
        Long-poll the queue once.

        Returns:
            Received messages (possibly empty), or None if the call failed.
        """
        request = self.poll_options.to_receive_request()
        try:
            response = await asyncio.to_thread(self.sqs_client.receive_message, **request)
        except Exception as e:
            self._report(RECEIVE_MESSAGE, e, "ReceiveMessage failed")
            return None

        if not isinstance(response, dict):
            response = {}
        raw_messages = response.get("Messages") or []
        messages: List[QueueMessage] = []
        for raw in raw_messages:
            try:
                messages.append(QueueMessage.from_sqs(raw))
            except ValidationError as e:
                # Without MessageId/ReceiptHandle the message can't be deleted;
                # it becomes visible again once its visibility timeout passes.
                log_exception(
                    logger,
                    e,
                    "Skipping malformed message from ReceiveMessage",
                    level=logging.WARNING,
                    include_traceback=False,
                    queue_url=self.queue_url,
                )

        record_received(self.queue_url, len(messages))
        if messages:
            log_with_context(
                logger,
                logging.DEBUG,
                "Received messages",
                queue_url=self.queue_url,
                message_count=len(messages),
            )
        return messages

    async def delete_batch(self, entries: Sequence[DeleteEntry]) -> bool:
        """
        Delete received messages.

        Entries are sent in chunks of at most 10, the DeleteMessageBatch
        limit. Entries SQS reports under "Failed" are surfaced as a
        BatchDeleteError through SQS_ERROR; they are not retried.

        Returns:
            True if every entry was deleted.
        """
        if not entries:
            return True

        ok = True
        for start in range(0, len(entries), MAX_RECEIVE_BATCH):
            chunk = entries[start : start + MAX_RECEIVE_BATCH]
            if not await self._delete_chunk(chunk):
                ok = False
        return ok

    async def _delete_chunk(self, chunk: Sequence[DeleteEntry]) -> bool:
        try:
            response = await asyncio.to_thread(
                self.sqs_client.delete_message_batch,
                QueueUrl=self.queue_url,
                Entries=[entry.to_sqs() for entry in chunk],
            )
        except Exception as e:
            record_deleted(self.queue_url, len(chunk), success=False)
            self._report(
                DELETE_MESSAGE_BATCH, e, "DeleteMessageBatch failed", entries=len(chunk)
            )
            return False

        if not isinstance(response, dict):
            response = {}
        failed = response.get("Failed") or []
        record_deleted(self.queue_url, len(chunk) - len(failed), success=True)
        if failed:
            record_deleted(self.queue_url, len(failed), success=False)
            self._report(
                DELETE_MESSAGE_BATCH,
                BatchDeleteError(failed),
                "DeleteMessageBatch rejected entries",
                include_traceback=False,
                failed_count=len(failed),
            )
            return False

        log_with_context(
            logger,
            logging.DEBUG,
            "Deleted messages",
            queue_url=self.queue_url,
            entries=len(chunk),
        )
        return True

    def _report(
        self,
        operation: str,
        error: Exception,
        msg: str,
        include_traceback: bool = True,
        **context: Any,
    ) -> None:
        category = classify_exception(error)

        record_sqs_error(operation, category.value)
        log_exception(
            logger,
            error,
            msg,
            include_traceback=include_traceback,
            operation=operation,
            queue_url=self.queue_url,
            error_category=category.value,
            **context,
        )
        self.emitter.emit(
            SQS_ERROR,
            SQSErrorEvent(error=error, operation=operation, category=category),
        )
