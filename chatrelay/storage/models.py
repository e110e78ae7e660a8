"""Data models for the chat message log."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MessageRecord(BaseModel):
    """A persisted chat message.

    ``receiver`` is ``None`` for public messages. Records are immutable once
    written; the repository never updates or deletes them.
    """

    id: int                          # Surrogate key, monotonically increasing
    sender: str                      # Identity of the author
    receiver: Optional[str] = None   # Addressee, None means public
    content: str                     # Text or image reference
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @property
    def is_public(self) -> bool:
        return self.receiver is None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the ``history`` payload."""
        return {
            "id": self.id,
            "sender": self.sender,
            "receiver": self.receiver,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
