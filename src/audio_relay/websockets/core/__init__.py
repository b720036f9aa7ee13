"""
Connection state for the WebSocket relay server.

This package owns the only mutable shared state of the relay: the listener
registry and the source slot, plus the connection wrapper they hold.
"""

from .connection import Connection
from .listener_registry import ListenerRegistry
from .source_slot import SourceSlot

__all__ = [
    "Connection",
    "ListenerRegistry",
    "SourceSlot",
]
