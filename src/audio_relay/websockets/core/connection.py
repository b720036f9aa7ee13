"""
Relay connection wrapper.

A ``Connection`` wraps one accepted WebSocket with its immutable role and a
fixed-capacity outbound queue. Broadcast frames are offered to the queue
without blocking; a per-connection writer task drains it in FIFO order, so a
stalled peer only ever fills its own queue.
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, Dict, Optional, Union

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode

from ...core.types import DEFAULT_LISTENER_QUEUE_SIZE, AudioFrame, Role

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class Connection:
    """One live duplex channel to a source or a listener."""

    def __init__(
        self,
        websocket: ServerConnection,
        role: Role,
        queue_size: int = DEFAULT_LISTENER_QUEUE_SIZE,
        on_write_failure: Optional[Callable[["Connection"], None]] = None,
    ) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")

        self.websocket = websocket
        self.role = role
        self.connection_id = f"{role.value}-{next(_connection_ids)}"

        self._outbound: "asyncio.Queue[AudioFrame]" = asyncio.Queue(maxsize=queue_size)
        self._writer_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._closing = False
        self._closed = False

        self._frames_sent = 0
        self._frames_rejected = 0

        # Called from the writer before closing when a send fails
        self.on_write_failure = on_write_failure

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} {self.remote_address}>"

    @property
    def remote_address(self) -> Any:
        return getattr(self.websocket, "remote_address", None)

    @property
    def is_open(self) -> bool:
        return not self._closing

    @property
    def queue_size(self) -> int:
        return self._outbound.maxsize

    @property
    def pending(self) -> int:
        """Frames queued but not yet written."""
        return self._outbound.qsize()

    async def recv(self) -> Union[bytes, str]:
        """
        Wait for the next inbound message.

        Raises:
            ConnectionClosed: On read failure or orderly close
        """
        return await self.websocket.recv()

    async def send_text(self, text: str) -> None:
        """Send a single text message directly, bypassing the queue."""
        await self.websocket.send(text)

    def offer(self, frame: AudioFrame) -> bool:
        """
        Queue a binary frame without blocking.

        Returns:
            False if the connection is closing or its queue is full
        """
        if self._closing:
            return False
        try:
            self._outbound.put_nowait(frame)
        except asyncio.QueueFull:
            self._frames_rejected += 1
            return False
        return True

    def start_writer(self) -> None:
        """Start draining the outbound queue onto the transport."""
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(
                self._drain(), name=f"writer-{self.connection_id}"
            )

    async def _drain(self) -> None:
        """Write queued frames in order until the connection fails."""
        try:
            while True:
                frame = await self._outbound.get()
                await self.websocket.send(frame)
                self._frames_sent += 1
        except ConnectionClosed:
            logger.debug(f"[{self.connection_id}] Transport closed while writing")
        except Exception as e:
            logger.error(f"[{self.connection_id}] Write failed: {e}", exc_info=True)
            if self.on_write_failure is not None:
                self.on_write_failure(self)
            self.close_soon(CloseCode.INTERNAL_ERROR, "write failed")

    async def _stop_writer(self) -> None:
        task = self._writer_task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(
        self, code: int = CloseCode.NORMAL_CLOSURE, reason: str = ""
    ) -> None:
        """Stop the writer and close the transport. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._closing = True

        await self._stop_writer()
        try:
            await self.websocket.close(code, reason)
        except Exception as e:
            logger.debug(f"[{self.connection_id}] Error while closing: {e}")

    def close_soon(
        self, code: int = CloseCode.NORMAL_CLOSURE, reason: str = ""
    ) -> None:
        """Schedule ``close`` without waiting for the closing handshake."""
        if self._closing:
            return
        self._closing = True
        self._close_task = asyncio.create_task(
            self.close(code, reason), name=f"close-{self.connection_id}"
        )

    def get_status(self) -> Dict[str, Any]:
        """Get connection status information."""
        return {
            "connection_id": self.connection_id,
            "role": self.role.value,
            "remote_address": self.remote_address,
            "is_open": self.is_open,
            "pending_frames": self.pending,
            "frames_sent": self._frames_sent,
            "frames_rejected": self._frames_rejected,
        }
