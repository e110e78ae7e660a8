"""Message router deciding who receives each event and what gets stored."""

from typing import Dict, Optional, Union

from chatrelay.logger import logger
from chatrelay.storage.models import MessageRecord
from chatrelay.storage.repository import MessageRepository
from .events import (
    ChatEvent,
    ChatPayload,
    HistoryPayload,
    HistoryRequestEvent,
    ImageEvent,
    OutboundPayload,
    PrivatePayload,
    image_reference,
    join_message,
    leave_message,
    public_line,
)
from .registry import ConnectionHandle, ConnectionRegistry


class MessageRouter:
    """Routes inbound events to live connections and the message log.

    Delivery and persistence are independent: a receiver that is offline is
    skipped silently, a send that fails is logged and skipped, and a failed
    write is logged without undoing anything already delivered.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        repository: MessageRepository,
        history_limit: int = 100,
        image_url_prefix: str = "/uploads",
    ):
        self.registry = registry
        self.repository = repository
        self.history_limit = history_limit
        self.image_url_prefix = image_url_prefix
        self._stats: Dict[str, int] = {
            "routed": 0,
            "delivered": 0,
            "failed_sends": 0,
            "failed_writes": 0,
        }

    async def route(
        self,
        sender: str,
        event: Union[ChatEvent, ImageEvent, HistoryRequestEvent],
    ) -> Optional[MessageRecord]:
        """Route one event from ``sender``. Returns the stored record, if any."""
        self._stats["routed"] += 1

        if isinstance(event, ChatEvent):
            return await self._route_message(sender, event.receiver, event.content)
        if isinstance(event, ImageEvent):
            content = image_reference(event.filename, self.image_url_prefix)
            return await self._route_message(sender, event.receiver, content)
        if isinstance(event, HistoryRequestEvent):
            await self._send_history(sender, event.receiver)
            return None

        logger.warning(f"Ignoring unsupported event from '{sender}': {type(event).__name__}")
        return None

    async def broadcast(self, payload: OutboundPayload) -> int:
        """Send a payload to every registered connection. Returns successful sends."""
        delivered = 0
        for handle in self.registry.all():
            if await self._deliver(handle, payload):
                delivered += 1
        return delivered

    async def announce_join(self, identity: str) -> int:
        return await self.broadcast(ChatPayload(content=join_message(identity)))

    async def announce_leave(self, identity: str) -> int:
        return await self.broadcast(ChatPayload(content=leave_message(identity)))

    def get_stats(self) -> Dict[str, int]:
        """Get routing counters."""
        return dict(self._stats)

    async def _route_message(
        self, sender: str, receiver: Optional[str], content: str
    ) -> Optional[MessageRecord]:
        if receiver:
            # Author's echo and recipient's copy are independent sends
            own = self.registry.lookup(sender)
            if own is not None:
                await self._deliver(own, PrivatePayload.echo(receiver=receiver, content=content))

            target = self.registry.lookup(receiver)
            if target is not None:
                await self._deliver(target, PrivatePayload.incoming(sender=sender, content=content))
            else:
                logger.debug(f"Private message from '{sender}' to offline '{receiver}' stored only")
        else:
            await self.broadcast(ChatPayload(content=public_line(sender, content)))

        return self._persist(sender, receiver, content)

    async def _send_history(self, requester: str, counterpart: str) -> None:
        handle = self.registry.lookup(requester)
        if handle is None:
            logger.debug(f"Dropping history response for unregistered '{requester}'")
            return

        messages = self.repository.history(requester, counterpart, self.history_limit)
        await self._deliver(handle, HistoryPayload(messages=messages))

    async def _deliver(self, handle: ConnectionHandle, payload: OutboundPayload) -> bool:
        try:
            await handle.send(payload)
        except Exception as e:
            self._stats["failed_sends"] += 1
            logger.warning(f"Skipping delivery to '{getattr(handle, 'identity', '?')}': {e}")
            return False

        self._stats["delivered"] += 1
        return True

    def _persist(self, sender: str, receiver: Optional[str], content: str) -> Optional[MessageRecord]:
        try:
            record = self.repository.append(sender, receiver, content)
        except Exception as e:
            logger.error(f"Message store rejected message from '{sender}': {e}")
            record = None

        if record is None:
            self._stats["failed_writes"] += 1
        return record
