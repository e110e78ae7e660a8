"""Chat event protocol definitions.

Inbound client frames are decoded once, at the connection boundary, into a
closed set of pydantic models discriminated on ``type``. Outbound payloads
are built per send and know how to render their own wire shape.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from chatrelay.logger import logger
from chatrelay.storage.models import MessageRecord

IMAGE_REFERENCE_TAG = "[image]"


class InboundTypes:
    """Client event types"""

    CHAT = "chat"
    IMAGE = "image"
    GET_HISTORY = "get_history"


class OutboundTypes:
    """Server payload types"""

    CHAT = "chat"
    PRIVATE = "private"
    HISTORY = "history"


# Inbound events


class _AddressedEvent(BaseModel):
    receiver: Optional[str] = Field(None, description="Addressee identity; absent means everyone")

    @field_validator("receiver", mode="before")
    @classmethod
    def _blank_receiver_is_public(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ChatEvent(_AddressedEvent):
    """Text message, public or private."""

    type: Literal["chat"] = InboundTypes.CHAT
    content: str = Field(..., description="Message text")


class ImageEvent(_AddressedEvent):
    """Reference to a previously uploaded image."""

    type: Literal["image"] = InboundTypes.IMAGE
    filename: str = Field(..., min_length=1, description="Stored upload filename")


class HistoryRequestEvent(BaseModel):
    """Request for the private conversation with ``receiver``."""

    type: Literal["get_history"] = InboundTypes.GET_HISTORY
    receiver: str = Field(..., min_length=1, description="Counterpart identity")

    @field_validator("receiver", mode="before")
    @classmethod
    def _strip_receiver(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


InboundEvent = Annotated[
    Union[ChatEvent, ImageEvent, HistoryRequestEvent],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter = TypeAdapter(InboundEvent)


def parse_event(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[Union[ChatEvent, ImageEvent, HistoryRequestEvent]]:
    """Decode a client frame into a typed event.

    Returns None for anything malformed: invalid JSON, an unknown ``type``,
    or a missing required field.
    """
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Dropping frame with invalid JSON: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Dropping frame that is not a JSON object: {type(data).__name__}")
        return None

    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(f"Dropping malformed event type={data.get('type')!r}: {e.error_count()} error(s)")
        return None


# Outbound payloads


class ChatPayload(BaseModel):
    """Public or system line shown to everyone."""

    content: str

    def to_wire(self) -> Dict[str, Any]:
        return {"type": OutboundTypes.CHAT, "content": self.content}


class PrivatePayload(BaseModel):
    """One side of a private exchange.

    The recipient's copy carries ``sender``; the author's own echo carries
    ``receiver``. Exactly one of the two is set.
    """

    content: str
    sender: Optional[str] = None
    receiver: Optional[str] = None

    @property
    def counterpart(self) -> str:
        return self.sender if self.sender is not None else self.receiver

    @classmethod
    def incoming(cls, sender: str, content: str) -> "PrivatePayload":
        return cls(sender=sender, content=content)

    @classmethod
    def echo(cls, receiver: str, content: str) -> "PrivatePayload":
        return cls(receiver=receiver, content=content)

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"type": OutboundTypes.PRIVATE}
        if self.sender is not None:
            wire["sender"] = self.sender
        else:
            wire["receiver"] = self.receiver
        wire["content"] = self.content
        return wire


class HistoryPayload(BaseModel):
    """Ordered private history between the requester and a counterpart."""

    messages: List[MessageRecord] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": OutboundTypes.HISTORY,
            "messages": [message.to_wire() for message in self.messages],
        }


OutboundPayload = Union[ChatPayload, PrivatePayload, HistoryPayload]


# Content helpers


def image_reference(filename: str, prefix: str = "/uploads") -> str:
    """Build the stored content string for an image message."""
    return f"{IMAGE_REFERENCE_TAG}{prefix.rstrip('/')}/{filename}"


def public_line(sender: str, content: str) -> str:
    return f"{sender}: {content}"


def join_message(identity: str) -> str:
    return f"{identity} joined the chat"


def leave_message(identity: str) -> str:
    return f"{identity} left the chat"
