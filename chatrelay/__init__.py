"""
ChatRelay - Real-time chat relay over WebSockets

A small relay server with:
- Public broadcast and private (unicast) messages between named users
- Image messages referencing uploaded files
- Durable message log with per-pair history replay
- Join/leave announcements driven by the connection lifecycle
"""

__version__ = "0.1.0"

from .config import settings
from .logger import logger
from .core import (
    ChatEvent,
    ChatPayload,
    ChatSession,
    ConnectionHandle,
    ConnectionRegistry,
    HistoryPayload,
    HistoryRequestEvent,
    ImageEvent,
    MessageRouter,
    PrivatePayload,
    SessionLifecycle,
    SessionState,
    parse_event,
)
from .storage import MessageRecord, MessageRepository

__all__ = [
    # Core components
    "logger",
    "settings",
    # Events
    "ChatEvent",
    "ImageEvent",
    "HistoryRequestEvent",
    "ChatPayload",
    "PrivatePayload",
    "HistoryPayload",
    "parse_event",
    # Routing
    "ConnectionHandle",
    "ConnectionRegistry",
    "MessageRouter",
    "ChatSession",
    "SessionLifecycle",
    "SessionState",
    # Storage
    "MessageRecord",
    "MessageRepository",
]
