"""Connection registry mapping identities to live connections."""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from chatrelay.logger import logger
from .events import OutboundPayload


class ConnectionHandle(ABC):
    """Outbound side of one live connection."""

    identity: str

    @abstractmethod
    async def send(self, payload: OutboundPayload) -> None:
        """Deliver a payload. May raise if the transport is gone."""

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the underlying transport."""


class ConnectionRegistry:
    """Registry of who is online.

    At most one handle per identity; a second registration for the same
    identity replaces the first. Every operation takes the same lock, and
    ``all()`` hands out a copy so broadcasts never iterate live state.
    """

    def __init__(self):
        self._connections: Dict[str, ConnectionHandle] = {}
        self._lock = threading.RLock()

    def register(self, identity: str, handle: ConnectionHandle) -> Optional[ConnectionHandle]:
        """Register a connection, returning the handle it superseded (if any)."""
        with self._lock:
            previous = self._connections.get(identity)
            self._connections[identity] = handle

        if previous is not None and previous is not handle:
            logger.warning(f"Connection for '{identity}' superseded by a new login")
            return previous

        logger.info(f"Registered connection for '{identity}'")
        return None

    def unregister(self, identity: str, handle: Optional[ConnectionHandle] = None) -> bool:
        """Unregister a connection.

        When ``handle`` is given the entry is only removed if it still points
        to that handle. Returns whether an entry was removed.
        """
        with self._lock:
            current = self._connections.get(identity)
            if current is None:
                return False
            if handle is not None and current is not handle:
                return False
            del self._connections[identity]

        logger.info(f"Unregistered connection for '{identity}'")
        return True

    def lookup(self, identity: str) -> Optional[ConnectionHandle]:
        """Get the live handle for an identity."""
        with self._lock:
            return self._connections.get(identity)

    def all(self) -> List[ConnectionHandle]:
        """Snapshot of every registered handle, in no particular order."""
        with self._lock:
            return list(self._connections.values())

    def identities(self) -> List[str]:
        """Sorted snapshot of online identities."""
        with self._lock:
            return sorted(self._connections)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
