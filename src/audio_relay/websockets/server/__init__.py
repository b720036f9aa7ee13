"""
WebSocket server implementation for audio relay.

This module contains the main AudioRelayServer class and related components.
"""

from .relay_server import AudioRelayServer, run_relay

__all__ = [
    "AudioRelayServer",
    "run_relay",
]
