"""
Audio handling components for the Audio Relay system.

Frames are opaque to the relay; this package only holds the rolling
history buffer used to seed new listeners.
"""

from .buffers import AudioHistoryBuffer

__all__ = [
    "AudioHistoryBuffer",
]
