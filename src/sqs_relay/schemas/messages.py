"""
Queue message schemas.

Pydantic models for messages returned by ReceiveMessage and the entries
sent back to DeleteMessageBatch.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueueMessage(BaseModel):
    """A message as returned by SQS ReceiveMessage.

    Field names follow Python style; aliases match the SQS wire names so a
    boto3 response dict validates directly. Keys this model does not know
    about are kept, so to_sqs() gives back exactly what was received.

    Attributes:
        message_id: Unique message identifier (MessageId)
        receipt_handle: Opaque token required to delete the message
        body: Message body
        attributes: System attributes requested via MessageSystemAttributeNames
        message_attributes: User attributes requested via MessageAttributeNames
        md5_of_body: MD5 digest of the body

    Example:
        >>> msg = QueueMessage.model_validate(
        ...     {"MessageId": "1", "ReceiptHandle": "r1", "Body": "hello"}
        ... )
        >>> msg.to_sqs()
        {'MessageId': '1', 'ReceiptHandle': 'r1', 'Body': 'hello'}
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message_id: str = Field(..., alias="MessageId", min_length=1)
    receipt_handle: str = Field(..., alias="ReceiptHandle", min_length=1)
    body: Optional[str] = Field(default=None, alias="Body")
    attributes: Dict[str, str] = Field(default_factory=dict, alias="Attributes")
    message_attributes: Dict[str, Any] = Field(
        default_factory=dict, alias="MessageAttributes"
    )
    md5_of_body: Optional[str] = Field(default=None, alias="MD5OfBody")

    @classmethod
    def from_sqs(cls, data: Dict[str, Any]) -> "QueueMessage":
        return cls.model_validate(data)

    def to_sqs(self) -> Dict[str, Any]:
        """Return the message in SQS wire shape, unmodified."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class DeleteEntry(BaseModel):
    """One entry of a DeleteMessageBatch request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="Id")
    receipt_handle: str = Field(..., alias="ReceiptHandle")

    @classmethod
    def from_message(cls, message: QueueMessage) -> "DeleteEntry":
        return cls(id=message.message_id, receipt_handle=message.receipt_handle)

    def to_sqs(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)
