"""
Listener registry for the WebSocket relay server.

This module provides the set of currently connected listeners. Every access
goes through a short, non-reentrant lock that is never held across network
I/O, so the registry is safe to share between connection handlers.
"""

import threading
from typing import Dict, List, Set

from .connection import Connection


class ListenerRegistry:
    """Set of connected listener connections."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: Set[Connection] = set()

        # Lifetime counters
        self._total_registered = 0
        self._total_unregistered = 0

    def register(self, conn: Connection) -> None:
        """Register a listener connection."""
        with self._lock:
            self._listeners.add(conn)
            self._total_registered += 1

    def unregister(self, conn: Connection) -> bool:
        """
        Unregister a listener connection.

        Removing an absent connection is a no-op, since a broadcast failure
        and the listener's own teardown may both try to remove it.

        Returns:
            True if the connection was registered
        """
        with self._lock:
            if conn not in self._listeners:
                return False
            self._listeners.discard(conn)
            self._total_unregistered += 1
            return True

    def snapshot(self) -> List[Connection]:
        """Copy of the current listeners, safe to iterate without the lock."""
        with self._lock:
            return list(self._listeners)

    def drain(self) -> List[Connection]:
        """Remove and return every listener (used on shutdown)."""
        with self._lock:
            listeners = list(self._listeners)
            self._listeners.clear()
            self._total_unregistered += len(listeners)
            return listeners

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def __contains__(self, conn: object) -> bool:
        with self._lock:
            return conn in self._listeners

    def get_stats(self) -> Dict[str, int]:
        """Get registry statistics."""
        with self._lock:
            return {
                "listeners": len(self._listeners),
                "total_registered": self._total_registered,
                "total_unregistered": self._total_unregistered,
            }
