"""Unit tests for SessionLifecycle."""

import json

import pytest

from chatrelay.core.events import ChatPayload
from chatrelay.core.registry import ConnectionRegistry
from chatrelay.core.session import SUPERSEDED_CLOSE_CODE, ChatSession, SessionLifecycle, SessionState
from chatrelay.storage.repository import MessageRepository


@pytest.mark.unit
class TestSessionLifecycle:
    """Test cases for SessionLifecycle."""

    # ==================== Open Tests ====================

    @pytest.mark.asyncio
    async def test_open_registers_and_announces(
        self, lifecycle: SessionLifecycle, registry: ConnectionRegistry,
        repository: MessageRepository, online, make_handle
    ):
        """Test opening a session registers it and broadcasts the join to all, itself included."""
        handles = online("A", "B")
        d_handle = make_handle("D")

        session = await lifecycle.open("D", d_handle)

        assert session.state == SessionState.OPEN
        assert session.opened_at is not None
        assert registry.lookup("D") is d_handle
        joined = ChatPayload(content="D joined the chat")
        assert handles["A"].sent == [joined]
        assert handles["B"].sent == [joined]
        assert d_handle.sent == [joined]
        assert repository.count_messages() == 0

    @pytest.mark.asyncio
    async def test_open_duplicate_closes_superseded(
        self, lifecycle: SessionLifecycle, registry: ConnectionRegistry, make_handle
    ):
        """Test a duplicate login closes the older connection."""
        old = make_handle("A")
        new = make_handle("A")

        await lifecycle.open("A", old)
        await lifecycle.open("A", new)

        assert old.closed is True
        assert old.close_code == SUPERSEDED_CLOSE_CODE
        assert new.closed is False
        assert registry.lookup("A") is new

    # ==================== Close Tests ====================

    @pytest.mark.asyncio
    async def test_close_unregisters_and_announces(
        self, lifecycle: SessionLifecycle, registry: ConnectionRegistry,
        repository: MessageRepository, online, make_handle
    ):
        """Test closing a session broadcasts the leave to those remaining."""
        handles = online("A", "B")
        d_handle = make_handle("D")
        session = await lifecycle.open("D", d_handle)

        assert await lifecycle.close(session) is True

        assert session.state == SessionState.CLOSED
        assert registry.lookup("D") is None
        left = ChatPayload(content="D left the chat")
        assert handles["A"].sent[-1] == left
        assert handles["B"].sent[-1] == left
        assert left not in d_handle.sent
        assert repository.count_messages() == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(
        self, lifecycle: SessionLifecycle, online, make_handle
    ):
        """Test a duplicate close notification is a no-op."""
        handles = online("A")
        session = await lifecycle.open("D", make_handle("D"))

        assert await lifecycle.close(session) is True
        assert await lifecycle.close(session) is False

        leaves = [p for p in handles["A"].sent if p.content == "D left the chat"]
        assert len(leaves) == 1

    @pytest.mark.asyncio
    async def test_close_superseded_session_keeps_successor(
        self, lifecycle: SessionLifecycle, registry: ConnectionRegistry, online, make_handle
    ):
        """Test the superseded session's close neither evicts the new one nor announces a leave."""
        handles = online("B")
        old = make_handle("A")
        new = make_handle("A")
        old_session = await lifecycle.open("A", old)
        await lifecycle.open("A", new)

        assert await lifecycle.close(old_session) is True

        assert registry.lookup("A") is new
        assert ChatPayload(content="A left the chat") not in handles["B"].sent

    @pytest.mark.asyncio
    async def test_close_before_open(self, lifecycle: SessionLifecycle, registry: ConnectionRegistry, make_handle):
        """Test closing a session that never opened only marks it closed."""
        session = ChatSession("A", make_handle("A"))

        assert await lifecycle.close(session) is True
        assert session.state == SessionState.CLOSED
        assert len(registry) == 0

    # ==================== Event Tests ====================

    @pytest.mark.asyncio
    async def test_handle_event_routes_valid_frame(
        self, lifecycle: SessionLifecycle, repository: MessageRepository, make_handle
    ):
        """Test a valid frame is decoded and routed."""
        handle = make_handle("A")
        session = await lifecycle.open("A", handle)

        record = await lifecycle.handle_event(session, json.dumps({"type": "chat", "content": "hi"}))

        assert record.content == "hi"
        assert session.event_count == 1
        assert handle.sent[-1] == ChatPayload(content="A: hi")

    @pytest.mark.asyncio
    async def test_handle_event_ignores_malformed_frame(
        self, lifecycle: SessionLifecycle, repository: MessageRepository, make_handle
    ):
        """Test malformed frames produce no deliveries and no records."""
        handle = make_handle("A")
        session = await lifecycle.open("A", handle)
        sent_before = len(handle.sent)

        for raw in ("not json", '{"type": "dance"}', '{"type": "chat"}', "[1, 2]"):
            assert await lifecycle.handle_event(session, raw) is None

        assert len(handle.sent) == sent_before
        assert repository.count_messages() == 0
        assert session.is_open()

    @pytest.mark.asyncio
    async def test_handle_event_on_closed_session(
        self, lifecycle: SessionLifecycle, repository: MessageRepository, make_handle
    ):
        """Test events arriving after close are ignored."""
        session = await lifecycle.open("A", make_handle("A"))
        await lifecycle.close(session)

        assert await lifecycle.handle_event(session, {"type": "chat", "content": "late"}) is None
        assert repository.count_messages() == 0

    def test_session_info(self, make_handle):
        """Test session info reflects its state."""
        session = ChatSession("A", make_handle("A"))

        info = session.get_info()

        assert info["identity"] == "A"
        assert info["state"] == "connecting"
        assert info["opened_at"] is None
