"""Relay-specific test fixtures."""

from pathlib import Path
from typing import List, Optional

import pytest

from chatrelay.core.events import OutboundPayload
from chatrelay.core.registry import ConnectionHandle, ConnectionRegistry
from chatrelay.core.router import MessageRouter
from chatrelay.core.session import SessionLifecycle
from chatrelay.storage.repository import MessageRepository


class FakeHandle(ConnectionHandle):
    """In-memory connection handle recording what it was sent."""

    def __init__(self, identity: str, fail: bool = False):
        self.identity = identity
        self.fail = fail
        self.sent: List[OutboundPayload] = []
        self.closed = False
        self.close_code: Optional[int] = None

    async def send(self, payload: OutboundPayload) -> None:
        if self.fail:
            raise ConnectionError("transport gone")
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code

    def wire(self) -> list:
        return [payload.to_wire() for payload in self.sent]


@pytest.fixture
def make_handle():
    """Factory for fake connection handles."""
    return FakeHandle


@pytest.fixture
def repository(temp_db_path: Path) -> MessageRepository:
    """Create a test message repository."""
    return MessageRepository(str(temp_db_path))


@pytest.fixture
def registry() -> ConnectionRegistry:
    """Create an empty connection registry."""
    return ConnectionRegistry()


@pytest.fixture
def router(registry: ConnectionRegistry, repository: MessageRepository) -> MessageRouter:
    """Create a test message router."""
    return MessageRouter(registry, repository)


@pytest.fixture
def lifecycle(registry: ConnectionRegistry, router: MessageRouter) -> SessionLifecycle:
    """Create a test session lifecycle."""
    return SessionLifecycle(registry, router)


@pytest.fixture
def online(registry: ConnectionRegistry, make_handle):
    """Register fake handles for the given identities and return them by name."""

    def _online(*identities: str) -> dict:
        handles = {}
        for identity in identities:
            handle = make_handle(identity)
            registry.register(identity, handle)
            handles[identity] = handle
        return handles

    return _online
