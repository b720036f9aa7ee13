"""
Audio Relay - live audio fan-out over WebSockets.

This package relays a single live audio stream from one source connection to
any number of listener connections.

Key Features:
- Exclusive source slot (one active source at a time)
- Non-blocking fan-out with per-listener bounded queues
- Slow or dead listeners are dropped without affecting the others
- Optional rolling history to seed newly joined listeners
- Relay client for sources and listeners

Architecture:
- Core: Roles, protocol constants and defaults
- Audio: Rolling history buffer
- WebSockets: Connection state, relay server and client
- Config: Configuration management
- Infrastructure: Logging and exceptions
"""

__version__ = "1.0.0"
__author__ = "Audio Relay Team"

# Core components
from .core.types import AudioFrame, Role

# Audio components
from .audio.buffers import AudioHistoryBuffer

# Networking components
from .websockets.core import Connection, ListenerRegistry, SourceSlot
from .websockets.server import AudioRelayServer, run_relay
from .websockets.server.process_messages import Broadcaster
from .websockets.client import RelayClient

# Configuration
from .config import RelayConfig, RelayConfigManager

# Infrastructure
from .infrastructure.logging import setup_logging, get_logger
from .infrastructure.exceptions import (
    AudioRelayError,
    ConfigurationError,
    NetworkError,
    WebSocketError,
    SourceConflictError,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core components
    "AudioFrame",
    "Role",
    # Audio components
    "AudioHistoryBuffer",
    # Networking components
    "Connection",
    "ListenerRegistry",
    "SourceSlot",
    "Broadcaster",
    "AudioRelayServer",
    "run_relay",
    "RelayClient",
    # Configuration
    "RelayConfig",
    "RelayConfigManager",
    # Infrastructure
    "setup_logging",
    "get_logger",
    "AudioRelayError",
    "ConfigurationError",
    "NetworkError",
    "WebSocketError",
    "SourceConflictError",
]
