import asyncio
import uuid
from typing import Optional, Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import SEND_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    """What the chat core needs from a client session. Used as a dict key, so identity hashing."""

    id: str

    @property
    def is_open(self) -> bool: ...

    def send(self, data: str) -> bool: ...


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the synchronous ``Connection`` interface.

    ``send`` never awaits: frames go onto a bounded queue that a writer task
    drains into the socket. Room state changes therefore run to completion
    without yielding to the event loop in the middle of a fan-out.
    """

    def __init__(self, websocket: WebSocket, queue_size: int = SEND_QUEUE_SIZE):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id[:8]}>"

    @property
    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    def send(self, data: str) -> bool:
        if not self.is_open:
            return False
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            logger.warning(f"Send queue full for connection {self.id}, dropping frame")
            return False
        return True

    async def _drain(self) -> None:
        while True:
            data = await self._queue.get()
            if data is None:
                break
            try:
                await self.websocket.send_text(data)
            except Exception as e:
                logger.debug(f"Send failed on connection {self.id}, marking closed: {e}")
                self._closed = True
                break

    async def close(self) -> None:
        """Stop the writer. Frames still queued are flushed if the socket is writable."""
        if self._writer is None:
            self._closed = True
            return
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            self._writer.cancel()
        self._closed = True
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None
