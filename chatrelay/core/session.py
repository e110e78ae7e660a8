"""Session lifecycle: what happens when a connection opens and closes."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from chatrelay.logger import logger
from chatrelay.storage.models import MessageRecord
from .events import parse_event
from .registry import ConnectionHandle, ConnectionRegistry
from .router import MessageRouter

SUPERSEDED_CLOSE_CODE = 4000


class SessionState(str, Enum):
    """Session state enumeration."""

    CONNECTING = "connecting"   # Transport accepted, not yet registered
    OPEN = "open"               # Registered and routing events
    CLOSED = "closed"           # Terminal


class ChatSession:
    """One client connection for one identity."""

    def __init__(self, identity: str, handle: ConnectionHandle):
        self.session_id = str(uuid.uuid4())
        self.identity = identity
        self.handle = handle
        self.state = SessionState.CONNECTING
        self.opened_at: Optional[datetime] = None
        self.closed_at: Optional[datetime] = None
        self.event_count = 0

    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    def get_info(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "identity": self.identity,
            "state": self.state.value,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "event_count": self.event_count,
        }


class SessionLifecycle:
    """Drives sessions through Connecting -> Open -> Closed."""

    def __init__(self, registry: ConnectionRegistry, router: MessageRouter):
        self.registry = registry
        self.router = router

    async def open(self, identity: str, handle: ConnectionHandle) -> ChatSession:
        """Register the connection and announce the join."""
        session = ChatSession(identity, handle)

        superseded = self.registry.register(identity, handle)
        session.state = SessionState.OPEN
        session.opened_at = datetime.now()
        logger.info(f"Session {session.session_id} opened for '{identity}'")

        if superseded is not None:
            # The old transport's own close notification finishes its session
            try:
                await superseded.close(code=SUPERSEDED_CLOSE_CODE, reason="superseded")
            except Exception as e:
                logger.debug(f"Error closing superseded connection for '{identity}': {e}")

        await self.router.announce_join(identity)
        return session

    async def close(self, session: ChatSession) -> bool:
        """Unregister and announce the leave. Safe to call more than once."""
        if session.state == SessionState.CLOSED:
            return False

        was_open = session.state == SessionState.OPEN
        session.state = SessionState.CLOSED
        session.closed_at = datetime.now()

        if not was_open:
            return True

        removed = self.registry.unregister(session.identity, session.handle)
        if removed:
            logger.info(f"Session {session.session_id} closed for '{session.identity}'")
            await self.router.announce_leave(session.identity)
        else:
            logger.info(
                f"Session {session.session_id} closed for '{session.identity}' after being superseded"
            )
        return True

    async def handle_event(
        self, session: ChatSession, raw: Union[str, bytes, Dict[str, Any]]
    ) -> Optional[MessageRecord]:
        """Decode one inbound frame and route it."""
        if not session.is_open():
            logger.debug(f"Ignoring event on {session.state.value} session {session.session_id}")
            return None

        event = parse_event(raw)
        if event is None:
            return None

        session.event_count += 1
        return await self.router.route(session.identity, event)
