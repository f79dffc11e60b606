"""Pydantic schemas for queue messages and relay envelopes."""

from sqs_relay.schemas.envelope import (
    ProcessedEnvelope,
    RawEnvelope,
    RelayEnvelope,
    parse_envelope,
)
from sqs_relay.schemas.messages import DeleteEntry, QueueMessage

__all__ = [
    "QueueMessage",
    "DeleteEntry",
    "RawEnvelope",
    "ProcessedEnvelope",
    "RelayEnvelope",
    "parse_envelope",
]
