"""Bus messages and the inbound event batch a worker receives.

The publisher sends plain string content; the bus wraps each published item
into a notification record, and a single worker invocation may receive
several records at once.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_PREFIX = "please "


def build_message_content(mode: str | None) -> str:
    """Build the outbound message content for an ingress ``mode``.

    The value is concatenated raw.  A missing mode behaves as an empty string.
    """
    return MESSAGE_PREFIX + (mode or "")


class BusMessage(BaseModel):
    """A single published notification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), alias="MessageId"
    )
    topic_arn: str = Field("", alias="TopicArn")
    message: str = Field(alias="Message")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="Timestamp"
    )


class InboundRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_source: str = Field("aws:sns", alias="EventSource")
    sns: BusMessage = Field(alias="Sns")

    @property
    def content(self) -> str:
        return self.sns.message


class InboundEvent(BaseModel):
    """The batch delivered to one worker invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    records: list[InboundRecord] = Field(default_factory=list, alias="Records")

    @classmethod
    def from_messages(cls, messages: list[BusMessage]) -> InboundEvent:
        return cls(records=[InboundRecord(sns=m) for m in messages])

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
