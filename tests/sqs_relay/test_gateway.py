"""Tests for SQSGateway receive and batch delete."""

import pytest
from botocore.exceptions import ClientError

from core.errors import BatchDeleteError, ErrorCategory
from sqs_relay.config import PollOptions
from sqs_relay.events import DELETE_MESSAGE_BATCH, RECEIVE_MESSAGE, SQS_ERROR, EventEmitter
from sqs_relay.gateway import SQSGateway
from sqs_relay.schemas import DeleteEntry


def client_error(code, status=400, operation="ReceiveMessage"):
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} happened"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture
def errors(emitter):
    collected = []
    emitter.on(SQS_ERROR, collected.append)
    return collected


@pytest.fixture
def gateway(mock_sqs_client, poll_options, emitter):
    return SQSGateway(mock_sqs_client, poll_options, emitter)


@pytest.mark.asyncio
class TestReceive:
    """Tests for SQSGateway.receive."""

    async def test_returns_parsed_messages(self, gateway, mock_sqs_client):
        mock_sqs_client.receive_message.return_value = {
            "Messages": [
                {"MessageId": "1", "ReceiptHandle": "r1", "Body": "a"},
                {"MessageId": "2", "ReceiptHandle": "r2", "Body": "b"},
            ]
        }

        messages = await gateway.receive()

        assert [m.message_id for m in messages] == ["1", "2"]
        assert [m.body for m in messages] == ["a", "b"]

    async def test_request_includes_optional_fields_when_set(self, mock_sqs_client, emitter, queue_url):
        options = PollOptions(
            queue_url=queue_url,
            message_attribute_names=["All"],
            message_system_attribute_names=["ApproximateReceiveCount"],
            max_number_of_messages=5,
            visibility_timeout=60,
            wait_time_seconds=10,
        )
        gateway = SQSGateway(mock_sqs_client, options, emitter)

        await gateway.receive()

        mock_sqs_client.receive_message.assert_called_once_with(
            QueueUrl=queue_url,
            MaxNumberOfMessages=5,
            WaitTimeSeconds=10,
            MessageAttributeNames=["All"],
            MessageSystemAttributeNames=["ApproximateReceiveCount"],
            VisibilityTimeout=60,
        )

    async def test_empty_response(self, gateway, mock_sqs_client):
        mock_sqs_client.receive_message.return_value = {}

        assert await gateway.receive() == []

    async def test_error_returns_none_and_emits(self, gateway, mock_sqs_client, errors):
        error = client_error("AWS.SimpleQueueService.NonExistentQueue")
        mock_sqs_client.receive_message.side_effect = error

        assert await gateway.receive() is None

        assert len(errors) == 1
        assert errors[0].operation == RECEIVE_MESSAGE
        assert errors[0].error is error
        assert errors[0].category is ErrorCategory.PERMANENT

    async def test_skips_malformed_messages(self, gateway, mock_sqs_client, errors):
        mock_sqs_client.receive_message.return_value = {
            "Messages": [
                {"MessageId": "1", "Body": "no receipt handle"},
                {"MessageId": "2", "ReceiptHandle": "r2"},
            ]
        }

        messages = await gateway.receive()

        assert [m.message_id for m in messages] == ["2"]
        assert errors == []


@pytest.mark.asyncio
class TestDeleteBatch:
    """Tests for SQSGateway.delete_batch."""

    async def test_empty_entries_make_no_call(self, gateway, mock_sqs_client):
        assert await gateway.delete_batch([]) is True
        mock_sqs_client.delete_message_batch.assert_not_called()

    async def test_single_call_for_batch(self, gateway, mock_sqs_client, queue_url):
        entries = [DeleteEntry(id="1", receipt_handle="r1"), DeleteEntry(id="2", receipt_handle="r2")]

        assert await gateway.delete_batch(entries) is True

        mock_sqs_client.delete_message_batch.assert_called_once_with(
            QueueUrl=queue_url,
            Entries=[
                {"Id": "1", "ReceiptHandle": "r1"},
                {"Id": "2", "ReceiptHandle": "r2"},
            ],
        )

    async def test_chunks_above_api_limit(self, gateway, mock_sqs_client):
        entries = [DeleteEntry(id=str(i), receipt_handle=f"r{i}") for i in range(13)]

        await gateway.delete_batch(entries)

        calls = mock_sqs_client.delete_message_batch.call_args_list
        assert [len(c.kwargs["Entries"]) for c in calls] == [10, 3]

    async def test_call_error_emits(self, gateway, mock_sqs_client, errors):
        mock_sqs_client.delete_message_batch.side_effect = client_error(
            "ThrottlingException", operation="DeleteMessageBatch"
        )

        ok = await gateway.delete_batch([DeleteEntry(id="1", receipt_handle="r1")])

        assert ok is False
        assert errors[0].operation == DELETE_MESSAGE_BATCH
        assert errors[0].category is ErrorCategory.TRANSIENT

    async def test_failed_entries_emit_batch_delete_error(self, gateway, mock_sqs_client, errors):
        mock_sqs_client.delete_message_batch.return_value = {
            "Successful": [{"Id": "1"}],
            "Failed": [
                {
                    "Id": "2",
                    "SenderFault": True,
                    "Code": "ReceiptHandleIsInvalid",
                    "Message": "The receipt handle has expired",
                }
            ],
        }

        ok = await gateway.delete_batch(
            [DeleteEntry(id="1", receipt_handle="r1"), DeleteEntry(id="2", receipt_handle="r2")]
        )

        assert ok is False
        assert len(errors) == 1
        assert isinstance(errors[0].error, BatchDeleteError)
        assert errors[0].error.failed[0]["Id"] == "2"
        assert errors[0].category is ErrorCategory.PERMANENT
