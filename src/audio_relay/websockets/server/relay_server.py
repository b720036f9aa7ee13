"""
WebSocket relay server for a single live audio stream.

Connections to the relay path are classified once, at accept time, from the
``source`` query parameter. At most one source is active; its binary frames
are fanned out to every connected listener. Each connection is torn down in
exactly one place, the ``finally`` block of its handler.
"""

import asyncio
import signal
from http import HTTPStatus
from typing import Any, Dict, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode
from websockets.http11 import Request, Response

from audio_relay.audio.buffers import AudioHistoryBuffer
from audio_relay.config.settings import RelayConfig
from audio_relay.core.types import CLOSE_REASON_SHUTDOWN, Role
from audio_relay.infrastructure import setup_logging
from ..core import Connection, ListenerRegistry, SourceSlot
from .process_messages import (
    Broadcaster,
    ControlMessageHandler,
    ConnectionUtils,
)

logger = setup_logging(component_name="relay_server")


class AudioRelayServer:
    """Relays one source's audio frames to any number of listeners."""

    def __init__(self, config: Optional[RelayConfig] = None) -> None:
        """Initialize the audio relay server."""
        self.config = config or RelayConfig()
        self.server: Optional[Server] = None

        self.registry = ListenerRegistry()
        self.source_slot = SourceSlot()
        self.history = AudioHistoryBuffer(self.config.history_buffer_bytes)

        # Initialize message handlers
        self.broadcaster = Broadcaster(self.registry, logger, self.history)
        self.control_handler = ControlMessageHandler(logger)

        self._stopped = False
        self.stats = {
            "total_connections": 0,
            "rejected_requests": 0,
        }

    @property
    def port(self) -> int:
        """Port actually bound, which differs from the configured one for port 0."""
        if self.server is not None:
            for sock in self.server.sockets:
                return sock.getsockname()[1]
        return self.config.port

    @property
    def url(self) -> str:
        return f"ws://{self.config.host}:{self.port}{self.config.path}"

    async def start(self) -> bool:
        """Start the audio relay server."""
        try:
            self.server = await serve(
                self._handle_connection,
                self.config.host,
                self.config.port,
                process_request=self._process_request,
                ping_interval=self.config.ping_interval,
                ping_timeout=self.config.ping_timeout,
                max_size=self.config.max_message_size,
                compression=None,  # No compression for low latency
            )
        except OSError as e:
            logger.error(f"Failed to start audio relay server: {e}", exc_info=True)
            return False

        logger.info(f"Audio relay server started on {self.url}")
        return True

    async def stop(self) -> None:
        """
        Stop the audio relay server.

        Stops accepting, then closes the active source and every listener.
        Both collections are cleared exactly once; repeated calls are no-ops.
        """
        if self._stopped:
            return
        self._stopped = True

        if self.server:
            self.server.close(close_connections=False)

        connections = self.registry.drain()
        source = self.source_slot.clear()
        if source is not None:
            connections.append(source)
        self.history.clear()

        closed = await ConnectionUtils.close_all(connections, logger)

        if self.server:
            await self.server.wait_closed()
        logger.info(f"Audio relay server stopped ({closed} connections closed)")

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Optional[Response]:
        """Refuse upgrades outside the relay path before any registration."""
        path = ConnectionUtils.request_path(request)
        if path != self.config.path:
            self.stats["rejected_requests"] += 1
            logger.warning(
                f"Rejected upgrade for unknown path {path!r} "
                f"from {connection.remote_address}"
            )
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """Classify an accepted connection and dispatch it."""
        role = ConnectionUtils.classify(websocket.request)
        conn = Connection(websocket, role, self.config.listener_queue_size)
        self.stats["total_connections"] += 1
        logger.info(
            f"New {role.value} connection {conn.connection_id} "
            f"from {conn.remote_address}"
        )

        if self._stopped:
            await conn.close(CloseCode.GOING_AWAY, CLOSE_REASON_SHUTDOWN)
            return

        if role is Role.SOURCE:
            await self._handle_source(conn)
        else:
            await self._handle_listener(conn)

    async def _handle_source(self, conn: Connection) -> None:
        """Hold the source slot and broadcast its frames until it disconnects."""
        if not self.source_slot.try_acquire(conn):
            await self.control_handler.reject_source(conn)
            return

        logger.info(f"Audio source connected: {conn.connection_id}")
        try:
            while True:
                message = await conn.recv()
                if isinstance(message, bytes):
                    self.broadcaster.broadcast(message)
                else:
                    self.control_handler.process_control_message(conn, message)
        except ConnectionClosed as e:
            logger.info(f"Source connection closed: {conn.connection_id} ({e})")
        except Exception as e:
            logger.error(
                f"Error handling source {conn.connection_id}: {e}", exc_info=True
            )
        finally:
            self.source_slot.release(conn)
            await conn.close()
            logger.info(f"Audio source disconnected: {conn.connection_id}")

    async def _handle_listener(self, conn: Connection) -> None:
        """Register a listener and wait for it to go away."""
        conn.start_writer()
        self.broadcaster.add_listener(conn)
        try:
            # Listener messages carry no meaning; reading only detects disconnects
            while True:
                await conn.recv()
        except ConnectionClosed as e:
            logger.debug(f"Listener connection closed: {conn.connection_id} ({e})")
        except Exception as e:
            logger.error(
                f"Error handling listener {conn.connection_id}: {e}", exc_info=True
            )
        finally:
            self.broadcaster.remove_listener(conn)
            await conn.close()

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "server_running": self.server is not None and not self._stopped,
            "connections": dict(self.stats),
            "source": self.source_slot.get_stats(),
            "registry": self.registry.get_stats(),
            "broadcast": self.broadcaster.get_stats(),
        }


async def run_relay(config: Optional[RelayConfig] = None) -> int:
    """
    Run the relay until SIGINT or SIGTERM.

    Returns:
        Process exit code
    """
    server = AudioRelayServer(config)
    if not await server.start():
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:
            # Signal handlers are unavailable on some platforms (Windows)
            pass

    logger.info("Audio relay server running. Press Ctrl+C to stop.")
    try:
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await server.stop()
    return 0
