# buffers.py
"""
Audio buffering components for the Audio Relay system.

This module provides the rolling history buffer used to seed newly joined
listeners with the most recent part of the stream, so they do not start on
a silent connection.
"""

import logging
import threading
import time
from typing import List

from ..core.types import AudioFrame

logger = logging.getLogger(__name__)


class AudioHistoryBuffer:
    """
    Thread-safe rolling buffer of recent audio frames with a byte ceiling.

    The buffer is append-only. When an append would push it past the
    ceiling, the whole buffer is discarded and the new frame becomes its only
    content. A ceiling of 0 disables retention entirely.
    """

    def __init__(self, max_bytes: int = 2**20):
        """
        Initialize the history buffer.

        Args:
            max_bytes: Byte ceiling for retained frames (0 disables the buffer)
        """
        if max_bytes < 0:
            raise ValueError("max_bytes cannot be negative")

        self.max_bytes = max_bytes
        self._frames: List[AudioFrame] = []
        self._size_bytes = 0
        self._lock = threading.Lock()

        # Performance tracking
        self._total_frames = 0
        self._resets = 0
        self._last_activity = time.time()

    @property
    def enabled(self) -> bool:
        """Whether the buffer retains anything at all."""
        return self.max_bytes > 0

    def append(self, frame: AudioFrame) -> None:
        """Record a frame, resetting the buffer wholesale past the ceiling."""
        if not self.enabled:
            return

        with self._lock:
            self._total_frames += 1
            self._last_activity = time.time()

            if self._size_bytes + len(frame) > self.max_bytes:
                self._frames = []
                self._size_bytes = 0
                self._resets += 1
                logger.debug("History buffer reached its ceiling, reset")

            # A single frame larger than the ceiling is never retained
            if len(frame) <= self.max_bytes:
                self._frames.append(frame)
                self._size_bytes += len(frame)

    def snapshot(self) -> List[AudioFrame]:
        """Return the retained frames, oldest first."""
        with self._lock:
            return list(self._frames)

    def clear(self) -> None:
        """Discard all retained frames."""
        with self._lock:
            self._frames = []
            self._size_bytes = 0

    @property
    def size_bytes(self) -> int:
        """Total bytes currently retained."""
        return self._size_bytes

    def __len__(self) -> int:
        return len(self._frames)

    def get_stats(self) -> dict:
        """Get buffer statistics."""
        with self._lock:
            return {
                "enabled": self.enabled,
                "frames": len(self._frames),
                "size_bytes": self._size_bytes,
                "max_bytes": self.max_bytes,
                "total_frames": self._total_frames,
                "resets": self._resets,
                "last_activity": self._last_activity,
            }
