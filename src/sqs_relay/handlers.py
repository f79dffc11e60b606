"""
Ready-made worker targets.

A worker target is called once inside each worker process with its
WorkerInbox and registers handlers on it. Point the CLI at your own with
--handler package.module:function.
"""

import logging

from core.logging import get_logger, log_with_context
from sqs_relay.events import SQS_MESSAGE
from sqs_relay.inbox import WorkerInbox
from sqs_relay.schemas import RawEnvelope

logger = get_logger(__name__)


def log_messages(inbox: WorkerInbox) -> None:
    """Log every relayed message. Useful for smoke-testing a queue."""

    def on_message(envelope) -> None:
        if isinstance(envelope, RawEnvelope):
            log_with_context(
                logger,
                logging.INFO,
                f"Received message: {envelope.message.body!r}",
                message_id=envelope.message.message_id,
                envelope_kind=envelope.kind,
                worker_id=inbox.worker_id,
            )
        else:
            log_with_context(
                logger,
                logging.INFO,
                f"Received processed message: {envelope.result!r}",
                envelope_kind=envelope.kind,
                worker_id=inbox.worker_id,
            )

    inbox.on(SQS_MESSAGE, on_message)
