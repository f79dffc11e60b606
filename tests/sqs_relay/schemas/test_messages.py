"""Tests for QueueMessage and DeleteEntry schemas."""

import pytest
from pydantic import ValidationError

from sqs_relay.schemas import DeleteEntry, QueueMessage


class TestQueueMessage:
    """Tests for QueueMessage."""

    def test_from_sqs_response_entry(self):
        msg = QueueMessage.from_sqs(
            {
                "MessageId": "abc",
                "ReceiptHandle": "rh",
                "Body": "payload",
                "Attributes": {"SentTimestamp": "1700000000000"},
            }
        )

        assert msg.message_id == "abc"
        assert msg.receipt_handle == "rh"
        assert msg.body == "payload"
        assert msg.attributes["SentTimestamp"] == "1700000000000"
        assert msg.message_attributes == {}

    def test_populate_by_field_name(self):
        msg = QueueMessage(message_id="1", receipt_handle="r1")

        assert msg.body is None

    def test_to_sqs_returns_only_received_keys(self):
        raw = {"MessageId": "1", "ReceiptHandle": "r1", "Body": "x"}

        assert QueueMessage.from_sqs(raw).to_sqs() == raw

    def test_unknown_keys_are_kept(self):
        raw = {"MessageId": "1", "ReceiptHandle": "r1", "MD5OfMessageAttributes": "m"}

        assert QueueMessage.from_sqs(raw).to_sqs() == raw

    @pytest.mark.parametrize(
        "raw",
        [
            {"ReceiptHandle": "r1"},
            {"MessageId": "1"},
            {"MessageId": "", "ReceiptHandle": "r1"},
            {"MessageId": "1", "ReceiptHandle": ""},
        ],
    )
    def test_identity_fields_required(self, raw):
        with pytest.raises(ValidationError):
            QueueMessage.from_sqs(raw)


class TestDeleteEntry:
    """Tests for DeleteEntry."""

    def test_from_message(self):
        msg = QueueMessage(message_id="1", receipt_handle="r1", body="x")

        entry = DeleteEntry.from_message(msg)

        assert entry.to_sqs() == {"Id": "1", "ReceiptHandle": "r1"}

    def test_is_frozen(self):
        entry = DeleteEntry(id="1", receipt_handle="r1")

        with pytest.raises(ValidationError):
            entry.id = "2"
