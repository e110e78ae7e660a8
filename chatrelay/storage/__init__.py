"""Storage layer for the chat relay."""

from .models import MessageRecord
from .repository import MessageRepository

__all__ = [
    "MessageRecord",
    "MessageRepository",
]
