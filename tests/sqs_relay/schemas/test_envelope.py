"""Tests for relay envelopes."""

import pytest

from sqs_relay.schemas import ProcessedEnvelope, QueueMessage, RawEnvelope, parse_envelope


class TestEnvelopeWire:
    """Tests for the dict form put on worker channels."""

    def test_raw_to_wire(self):
        msg = QueueMessage.from_sqs({"MessageId": "1", "ReceiptHandle": "r1", "Body": "b"})

        wire = RawEnvelope(message=msg).to_wire()

        assert wire == {
            "kind": "raw",
            "message": {"MessageId": "1", "ReceiptHandle": "r1", "Body": "b"},
        }

    def test_processed_to_wire(self):
        assert ProcessedEnvelope(result={"a": 1}).to_wire() == {
            "kind": "processed",
            "result": {"a": 1},
        }

    def test_processed_defaults_to_none(self):
        envelope = ProcessedEnvelope()

        assert envelope.result is None
        assert envelope.payload is None


class TestParseEnvelope:
    """Tests for parse_envelope."""

    def test_parses_raw(self):
        envelope = parse_envelope(
            {"kind": "raw", "message": {"MessageId": "1", "ReceiptHandle": "r1"}}
        )

        assert isinstance(envelope, RawEnvelope)
        assert envelope.message.message_id == "1"

    def test_parses_processed(self):
        envelope = parse_envelope({"kind": "processed", "result": "done"})

        assert isinstance(envelope, ProcessedEnvelope)
        assert envelope.result == "done"

    @pytest.mark.parametrize(
        "obj",
        [
            None,
            42,
            "raw",
            {},
            {"kind": "other"},
            {"kind": "raw"},
            {"kind": "raw", "message": {"MessageId": "1"}},
        ],
    )
    def test_returns_none_for_anything_else(self, obj):
        assert parse_envelope(obj) is None
