"""Outbound message channels for per-connection single-writer sending.

Every payload for one WebSocket goes through a bounded queue drained by a
single writer task, so concurrent routers never interleave sends on the same
socket and a slow client cannot stall a broadcast.
"""

from __future__ import annotations

import asyncio
import json

from fastapi.websockets import WebSocket, WebSocketState

from chatrelay.core.events import OutboundPayload
from chatrelay.core.registry import ConnectionHandle
from chatrelay.logger import logger


def is_websocket_closed(websocket: WebSocket) -> bool:
    """Check whether either side of the WebSocket has gone away."""
    return (
        websocket.client_state == WebSocketState.DISCONNECTED
        or websocket.application_state == WebSocketState.DISCONNECTED
    )


class OutboundChannel(ConnectionHandle):
    """Per-connection outbound channel with a single writer task."""

    def __init__(
        self,
        websocket: WebSocket,
        identity: str,
        *,
        maxsize: int = 1000,
    ) -> None:
        self.websocket = websocket
        self.identity = identity
        self.queue: asyncio.Queue[OutboundPayload] = asyncio.Queue(maxsize=maxsize)
        self._writer_task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._writer_task is None or self._writer_task.done():
            self._writer_task = asyncio.create_task(self._writer(), name=f"outbound-{self.identity}")

    async def send(self, payload: OutboundPayload) -> None:
        """Queue a payload without waiting for the socket.

        Raises ConnectionError when the channel is closed or its queue is
        full; the router treats either as a skipped delivery.
        """
        if self._closed or is_websocket_closed(self.websocket):
            raise ConnectionError("connection closed")
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull:
            raise ConnectionError(f"outbound queue full ({self.queue.maxsize})") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the socket (if still open) and stop the writer."""
        if not self._closed and not is_websocket_closed(self.websocket):
            try:
                await self.websocket.close(code=code, reason=reason)
            except Exception as e:
                logger.debug(f"Error closing websocket for '{self.identity}': {e}")
        await self.stop()

    async def stop(self) -> None:
        """Stop the writer and discard anything still queued."""
        self._closed = True
        if self._writer_task is not None:
            self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Error awaiting writer task close: {e}")
            self._writer_task = None

        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()

    async def _writer(self) -> None:
        """Single writer that sends all payloads on this connection."""
        try:
            while not self._closed:
                payload = await self.queue.get()
                try:
                    if is_websocket_closed(self.websocket):
                        logger.debug(f"WebSocket for '{self.identity}' closed; dropping outbound payload")
                    else:
                        await self.websocket.send_text(json.dumps(payload.to_wire()))
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    # The transport's own close notification ends the session
                    logger.error(f"Outbound send to '{self.identity}' failed: {e}")
                finally:
                    self.queue.task_done()
        except asyncio.CancelledError:
            pass
