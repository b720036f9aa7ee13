"""
Single-occupancy slot for the active audio source.
"""

import threading
from typing import Dict, Optional, Union

from .connection import Connection


class SourceSlot:
    """Holds at most one active source connection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._source: Optional[Connection] = None
        self._acquisitions = 0
        self._rejections = 0

    def try_acquire(self, conn: Connection) -> bool:
        """
        Make ``conn`` the active source if the slot is empty.

        A single check-and-set under the lock: no retry, no queueing. The
        caller is responsible for notifying and closing a rejected source.
        """
        with self._lock:
            if self._source is not None:
                self._rejections += 1
                return False
            self._source = conn
            self._acquisitions += 1
            return True

    def release(self, conn: Connection) -> bool:
        """
        Empty the slot only if it still holds exactly ``conn``.

        A stale release from an already replaced source is a no-op.
        """
        with self._lock:
            if self._source is not conn:
                return False
            self._source = None
            return True

    def clear(self) -> Optional[Connection]:
        """Empty the slot unconditionally and return its previous occupant."""
        with self._lock:
            source, self._source = self._source, None
            return source

    @property
    def current(self) -> Optional[Connection]:
        with self._lock:
            return self._source

    @property
    def is_occupied(self) -> bool:
        with self._lock:
            return self._source is not None

    def get_stats(self) -> Dict[str, Union[int, bool, Optional[str]]]:
        """Get slot statistics."""
        with self._lock:
            return {
                "occupied": self._source is not None,
                "source_id": self._source.connection_id if self._source else None,
                "acquisitions": self._acquisitions,
                "rejections": self._rejections,
            }
