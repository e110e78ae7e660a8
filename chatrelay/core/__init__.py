"""Core components of the chat relay."""

from .events import (
    ChatEvent,
    ChatPayload,
    HistoryPayload,
    HistoryRequestEvent,
    ImageEvent,
    PrivatePayload,
    parse_event,
)
from .registry import ConnectionHandle, ConnectionRegistry
from .router import MessageRouter
from .session import ChatSession, SessionLifecycle, SessionState

__all__ = [
    "ChatEvent",
    "ChatPayload",
    "ChatSession",
    "ConnectionHandle",
    "ConnectionRegistry",
    "HistoryPayload",
    "HistoryRequestEvent",
    "ImageEvent",
    "MessageRouter",
    "PrivatePayload",
    "SessionLifecycle",
    "SessionState",
    "parse_event",
]
