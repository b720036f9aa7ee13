"""
WebSocket client components for the Audio Relay system.

This module provides a relay client usable as the audio source or as a
listener.
"""

from .websocket_client import RelayClient

__all__ = ["RelayClient"]
