"""
Relay envelope schemas.

An envelope is what the coordinator puts on a worker's channel: either
the raw queue message (no preprocessor configured) or the preprocessor's
result. The `kind` field is the discriminant; exactly one variant exists
per envelope.

Envelopes cross the process boundary as plain dicts (to_wire) and are
validated back on the worker side (parse_envelope).
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from sqs_relay.schemas.messages import QueueMessage


class RawEnvelope(BaseModel):
    """A received message relayed as-is."""

    kind: Literal["raw"] = "raw"
    message: QueueMessage

    @property
    def payload(self) -> QueueMessage:
        return self.message

    def to_wire(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message.to_sqs()}


class ProcessedEnvelope(BaseModel):
    """A preprocessor result relayed in place of the message.

    result is None when the preprocessor raised or returned nothing.
    """

    kind: Literal["processed"] = "processed"
    result: Any = None

    @property
    def payload(self) -> Any:
        return self.result

    def to_wire(self) -> Dict[str, Any]:
        return {"kind": self.kind, "result": self.result}


RelayEnvelope = Annotated[
    Union[RawEnvelope, ProcessedEnvelope], Field(discriminator="kind")
]

_envelope_adapter: TypeAdapter = TypeAdapter(RelayEnvelope)


def parse_envelope(obj: Any) -> Optional[Union[RawEnvelope, ProcessedEnvelope]]:
    """Parse an object read from a worker channel.

    Returns None for anything that is not a valid envelope, so other
    traffic on the same channel can be passed through untouched.
    """
    if not isinstance(obj, dict) or obj.get("kind") not in ("raw", "processed"):
        return None
    try:
        return _envelope_adapter.validate_python(obj)
    except ValidationError:
        return None
