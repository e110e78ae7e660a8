"""HTTP and WebSocket API for the chat relay."""

from .server import ChatServer

__all__ = ["ChatServer"]
