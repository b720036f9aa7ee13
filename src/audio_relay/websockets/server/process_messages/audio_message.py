"""
Audio fan-out for the WebSocket relay server.

This module delivers each binary frame from the active source to every
registered listener, independently of the others.
"""

import logging
from typing import Any, Dict, Optional

from websockets.frames import CloseCode

from ....audio.buffers import AudioHistoryBuffer
from ....core.types import CLOSE_REASON_SLOW_LISTENER, AudioFrame
from ...core import Connection, ListenerRegistry


class Broadcaster:
    """Fans source frames out to all registered listeners."""

    def __init__(
        self,
        registry: ListenerRegistry,
        logger: logging.Logger,
        history: Optional[AudioHistoryBuffer] = None,
    ) -> None:
        self.registry = registry
        self.logger = logger
        self.history = history if history is not None else AudioHistoryBuffer(0)

        # Performance tracking
        self._frames_broadcast = 0
        self._bytes_broadcast = 0
        self._listeners_dropped = 0

    def add_listener(self, conn: Connection) -> int:
        """
        Seed a new listener from recent history and register it.

        Only the most recent frames that fit in half of the listener's queue
        are replayed, leaving room for live frames while the writer catches up.

        Returns:
            Number of history frames queued for the listener
        """
        seeded = 0
        limit = conn.queue_size // 2
        if limit > 0:
            for frame in self.history.snapshot()[-limit:]:
                if not conn.offer(frame):
                    break
                seeded += 1

        conn.on_write_failure = self._drop_failed_listener
        self.registry.register(conn)
        self.logger.info(
            f"Listener registered: {conn.connection_id} "
            f"({len(self.registry)} connected, {seeded} history frames)"
        )
        return seeded

    def remove_listener(self, conn: Connection) -> bool:
        """Unregister a listener; removing an absent one is a no-op."""
        removed = self.registry.unregister(conn)
        if removed:
            self.logger.info(
                f"Listener unregistered: {conn.connection_id} "
                f"({len(self.registry)} connected)"
            )
        return removed

    def _drop_failed_listener(self, conn: Connection) -> None:
        """Unregister a listener whose writer could not deliver a frame."""
        if self.registry.unregister(conn):
            self._listeners_dropped += 1
            self.logger.warning(
                f"Dropping listener {conn.connection_id}: write failed "
                f"({len(self.registry)} connected)"
            )

    def broadcast(self, frame: AudioFrame) -> int:
        """
        Deliver one frame to every listener without blocking.

        A listener whose queue is full or which is already closing is removed
        and closed; the remaining listeners still receive the frame.

        Returns:
            Number of listeners the frame was queued for
        """
        self._frames_broadcast += 1
        self._bytes_broadcast += len(frame)
        self.history.append(frame)

        delivered = 0
        for listener in self.registry.snapshot():
            if listener.offer(frame):
                delivered += 1
                continue

            if self.registry.unregister(listener):
                self._listeners_dropped += 1
                self.logger.warning(
                    f"Dropping listener {listener.connection_id}: "
                    f"outbound queue full or connection closing"
                )
            listener.close_soon(CloseCode.TRY_AGAIN_LATER, CLOSE_REASON_SLOW_LISTENER)

        if delivered == 0:
            self.logger.debug("No listeners received frame")

        return delivered

    def get_stats(self) -> Dict[str, Any]:
        """Get broadcast statistics."""
        return {
            "frames_broadcast": self._frames_broadcast,
            "bytes_broadcast": self._bytes_broadcast,
            "listeners_dropped": self._listeners_dropped,
            "listeners": len(self.registry),
            "history": self.history.get_stats(),
        }
