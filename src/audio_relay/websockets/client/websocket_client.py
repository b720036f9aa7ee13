"""
WebSocket client for the Audio Relay server.

This module provides a client that joins the relay either as the audio
source, pushing binary frames, or as a listener, receiving them.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake
from websockets.frames import CloseCode

from audio_relay.core.types import (
    CLOSE_REASON_SOURCE_CONFLICT,
    SOURCE_CONFLICT_MESSAGE,
    SOURCE_QUERY_PARAM,
    AudioFrame,
    Role,
)
from audio_relay.infrastructure.exceptions import SourceConflictError, WebSocketError


class RelayClient:
    """
    Client for one relay connection.

    A source client must pass the admission check in ``connect``: the relay
    answers a second source with a text notice and closes it, which surfaces
    here as ``SourceConflictError`` and is never retried automatically.
    """

    def __init__(
        self,
        server_url: str,
        role: Role = Role.LISTENER,
        logger: Optional[logging.Logger] = None,
        client_id: Optional[str] = None,
        admission_timeout: float = 0.25,
    ) -> None:
        """
        Initialize the relay client.

        Args:
            server_url: Relay URL, e.g. ``ws://localhost:8765/ws``
            role: Whether to join as the source or as a listener
            logger: Logger instance
            client_id: Label used in log lines
            admission_timeout: How long a source waits for a conflict notice
        """
        if not server_url:
            raise ValueError("server_url cannot be empty")
        if not server_url.startswith(("ws://", "wss://")):
            raise ValueError("server_url must start with 'ws://' or 'wss://'")

        self.server_url: str = server_url
        self.role: Role = role
        self.logger: logging.Logger = logger or logging.getLogger(__name__)
        self.client_id: str = client_id or role.value
        self.admission_timeout = admission_timeout

        self.websocket: Optional[ClientConnection] = None
        self.is_connected: bool = False

        # Performance tracking
        self._frames_sent: int = 0
        self._frames_received: int = 0
        self._bytes_sent: int = 0
        self._connection_errors: int = 0

    @property
    def connect_url(self) -> str:
        """Server URL carrying the role indicator for this client."""
        parts = urlsplit(self.server_url)
        query = [
            (key, value)
            for key, value in parse_qsl(parts.query)
            if key != SOURCE_QUERY_PARAM
        ]
        if self.role is Role.SOURCE:
            query.append((SOURCE_QUERY_PARAM, "true"))
        return urlunsplit(parts._replace(query=urlencode(query)))

    async def connect(self, max_retries: int = 1, retry_delay: float = 1.0) -> None:
        """
        Connect to the relay, retrying transport failures with backoff.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Initial delay between attempts (doubled each time)

        Raises:
            SourceConflictError: If another source is already connected
            WebSocketError: If no connection could be established
        """
        for attempt in range(max_retries):
            try:
                self.logger.info(
                    f"[{self.client_id}] Connecting to {self.server_url} "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                self.websocket = await connect(self.connect_url, compression=None)
                break
            except InvalidHandshake as e:
                self._connection_errors += 1
                raise WebSocketError(
                    f"[{self.client_id}] Relay refused the connection: {e}"
                ) from e
            except (OSError, asyncio.TimeoutError) as e:
                self._connection_errors += 1
                self.logger.error(
                    f"[{self.client_id}] Connection failed (attempt {attempt + 1}): {e}"
                )
                if attempt == max_retries - 1:
                    raise WebSocketError(f"Could not connect to {self.server_url}") from e
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

        if self.role is Role.SOURCE:
            await self._check_admission()

        self.is_connected = True
        self.logger.info(f"[{self.client_id}] Connected as {self.role.value}")

    async def _check_admission(self) -> None:
        """Wait briefly for a conflict notice; silence means the source was accepted."""
        try:
            message = await asyncio.wait_for(
                self.websocket.recv(), timeout=self.admission_timeout
            )
        except asyncio.TimeoutError:
            return
        except ConnectionClosed as e:
            self.websocket = None
            raise self._closed_error(e, "during admission") from e

        if message == SOURCE_CONFLICT_MESSAGE:
            self.logger.error(f"[{self.client_id}] {SOURCE_CONFLICT_MESSAGE}")
            await self._close_websocket()
            raise SourceConflictError(SOURCE_CONFLICT_MESSAGE)

        self.logger.debug(f"[{self.client_id}] Ignoring unexpected admission message")

    def _closed_error(self, e: ConnectionClosed, action: str) -> WebSocketError:
        """
        Map a closed connection to the error reported to the caller.

        The relay closes a refused source with POLICY_VIOLATION. If the notice
        arrives after admission, that close is still a ``SourceConflictError``.
        """
        self.is_connected = False
        rcvd = e.rcvd
        if rcvd is not None and (
            rcvd.code == CloseCode.POLICY_VIOLATION
            or rcvd.reason == CLOSE_REASON_SOURCE_CONFLICT
        ):
            self.logger.error(f"[{self.client_id}] {SOURCE_CONFLICT_MESSAGE}")
            return SourceConflictError(SOURCE_CONFLICT_MESSAGE)
        return WebSocketError(f"[{self.client_id}] Connection closed {action}")

    async def send_audio(self, frame: AudioFrame) -> None:
        """
        Send one binary frame to the relay.

        Raises:
            SourceConflictError: If the relay turned this source away
            WebSocketError: If the client is not connected or the send fails
        """
        if not self.is_connected or not self.websocket:
            raise WebSocketError(f"[{self.client_id}] Cannot send audio - not connected")

        try:
            await self.websocket.send(bytes(frame))
        except ConnectionClosed as e:
            raise self._closed_error(e, "while sending audio") from e

        self._frames_sent += 1
        self._bytes_sent += len(frame)

    async def receive(self) -> AudioFrame:
        """
        Wait for the next binary frame, skipping text messages.

        Raises:
            SourceConflictError: If the relay rejected this client as a source
            WebSocketError: If the connection is closed
        """
        if not self.websocket:
            raise WebSocketError(f"[{self.client_id}] Cannot receive - not connected")

        while True:
            try:
                message: Union[str, bytes] = await self.websocket.recv()
            except ConnectionClosed as e:
                raise self._closed_error(e, "while receiving") from e

            if isinstance(message, bytes):
                self._frames_received += 1
                return message

            if message == SOURCE_CONFLICT_MESSAGE:
                self.is_connected = False
                raise SourceConflictError(message)
            self.logger.debug(f"[{self.client_id}] Ignoring text message: {message!r}")

    async def frames(self) -> AsyncIterator[AudioFrame]:
        """Yield received frames until the connection closes."""
        while True:
            try:
                yield await self.receive()
            except SourceConflictError:
                raise
            except WebSocketError:
                return

    async def stream_file(
        self,
        path: Union[str, Path],
        chunk_size: int = 4096,
        interval: float = 0.0,
    ) -> int:
        """
        Stream a file's bytes to the relay as binary frames.

        The file is sent as-is, without decoding. ``interval`` paces the
        frames so a pre-recorded stream plays out in real time.

        Returns:
            Number of bytes sent
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        sent = 0
        with open(path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                await self.send_audio(chunk)
                sent += len(chunk)
                if interval > 0:
                    await asyncio.sleep(interval)

        self.logger.info(f"[{self.client_id}] Finished streaming {path} ({sent} bytes)")
        return sent

    async def _close_websocket(self) -> None:
        if self.websocket:
            try:
                await self.websocket.close()
            finally:
                self.websocket = None
                self.is_connected = False

    async def disconnect(self) -> None:
        """Disconnect from the relay."""
        await self._close_websocket()
        self.logger.info(f"[{self.client_id}] Disconnected from relay")

    async def __aenter__(self) -> "RelayClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def get_status(self) -> Dict[str, Any]:
        """Get client status and performance information."""
        return {
            "client_id": self.client_id,
            "role": self.role.value,
            "is_connected": self.is_connected,
            "server_url": self.server_url,
            "frames_sent": self._frames_sent,
            "frames_received": self._frames_received,
            "bytes_sent": self._bytes_sent,
            "connection_errors": self._connection_errors,
        }
