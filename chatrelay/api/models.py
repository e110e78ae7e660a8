"""API request/response models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Response model for a stored upload."""

    filename: str = Field(..., description="Stored filename to reference in image events")
    url: str = Field(..., description="Path the upload is served under")


class OnlineResponse(BaseModel):
    """Response model for online identities."""

    users: List[str] = Field(default_factory=list)
    total: int = 0


class MessageResponse(BaseModel):
    """Response model for a stored message."""

    id: int
    sender: str
    receiver: Optional[str] = None
    content: str
    timestamp: datetime


class HistoryResponse(BaseModel):
    """Response model for a private history query."""

    user_a: str
    user_b: str
    messages: List[MessageResponse] = Field(default_factory=list)
    total: int = 0


class StatsResponse(BaseModel):
    """Response model for relay statistics."""

    online_users: int = 0
    active_sessions: int = 0
    stored_messages: int = 0
    routing: Dict[str, int] = Field(default_factory=dict)
    sessions: List[Dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    """Response model for errors."""

    success: bool = False
    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(default=None, description="Error details")
    timestamp: datetime = Field(default_factory=datetime.now)
