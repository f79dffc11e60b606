"""Shared fixtures for sqs_relay tests."""

import queue
from unittest.mock import MagicMock

import pytest

from sqs_relay.config import PollOptions
from sqs_relay.relay import WorkerHandle, WorkerRegistry


@pytest.fixture
def queue_url():
    return "https://sqs.us-east-1.amazonaws.com/123456789012/test-queue"


@pytest.fixture
def poll_options(queue_url):
    """Poll options that don't long-poll."""
    return PollOptions(queue_url=queue_url, wait_time_seconds=0)


@pytest.fixture
def mock_sqs_client():
    """boto3 SQS client stand-in with an empty queue."""
    client = MagicMock()
    client.receive_message = MagicMock(return_value={"Messages": []})
    client.delete_message_batch = MagicMock(return_value={"Successful": [], "Failed": []})
    return client


@pytest.fixture
def channels():
    """Inbound channels for two in-process workers."""
    return [queue.Queue(), queue.Queue()]


@pytest.fixture
def registry(channels):
    """Registry holding one handle per channel, without real processes."""
    reg = WorkerRegistry()
    for i, channel in enumerate(channels, start=1):
        reg.add(WorkerHandle(f"worker-{i}", channel))
    return reg
