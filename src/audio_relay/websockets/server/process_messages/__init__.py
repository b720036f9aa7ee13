"""
Message processing modules for WebSocket relay server.

This package contains the audio fan-out, control message handling and
connection utilities.
"""

from .audio_message import Broadcaster
from .control_message import ControlMessageHandler
from .utils import ConnectionUtils

__all__ = [
    "Broadcaster",
    "ControlMessageHandler",
    "ConnectionUtils",
]
