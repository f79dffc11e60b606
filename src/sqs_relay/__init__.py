"""
SQS relay: poll an SQS queue in one coordinator process and fan each
message out to a pool of worker processes.

Coordinator:
    >>> registry = WorkerRegistry()
    >>> pool = WorkerPool("myapp.workers:register", size=4, registry=registry)
    >>> pool.start()
    >>> consumer = SQSConsumer(sqs_client, PollOptions(queue_url=url), registry)
    >>> await consumer.start_polling()

Worker target (myapp/workers.py):
    >>> def register(inbox):
    ...     inbox.on(SQS_MESSAGE, lambda envelope: handle(envelope.payload))
"""

from sqs_relay.config import ConsumerConfig, PollOptions, load_config
from sqs_relay.consumer import PollingState, SQSConsumer
from sqs_relay.events import (
    IPC_MESSAGE,
    PREPROCESSOR_ERROR,
    RELAY_ERROR,
    SQS_ERROR,
    SQS_MESSAGE,
    EventEmitter,
    PreprocessorErrorEvent,
    RelayErrorEvent,
    SQSErrorEvent,
)
from sqs_relay.gateway import SQSGateway
from sqs_relay.inbox import WorkerInbox
from sqs_relay.pool import WorkerPool
from sqs_relay.relay import DispatchRelay, WorkerHandle, WorkerRegistry
from sqs_relay.schemas import (
    DeleteEntry,
    ProcessedEnvelope,
    QueueMessage,
    RawEnvelope,
    parse_envelope,
)

__all__ = [
    "ConsumerConfig",
    "PollOptions",
    "load_config",
    "PollingState",
    "SQSConsumer",
    "SQSGateway",
    "WorkerInbox",
    "WorkerPool",
    "DispatchRelay",
    "WorkerHandle",
    "WorkerRegistry",
    "QueueMessage",
    "DeleteEntry",
    "RawEnvelope",
    "ProcessedEnvelope",
    "parse_envelope",
    "EventEmitter",
    "SQSErrorEvent",
    "PreprocessorErrorEvent",
    "RelayErrorEvent",
    "SQS_MESSAGE",
    "IPC_MESSAGE",
    "SQS_ERROR",
    "PREPROCESSOR_ERROR",
    "RELAY_ERROR",
]
