"""
Common types and constants for the Audio Relay system.

This module centralizes connection roles, protocol constants and defaults to
avoid hardcoding them throughout the codebase.
"""

from enum import Enum
from typing import Final

# One opaque chunk of the source's stream, forwarded without interpretation
AudioFrame = bytes


class Role(Enum):
    """Role of a relay connection, decided once at accept time."""

    SOURCE = "source"
    LISTENER = "listener"


# Query parameter carrying the role indicator (``?source=true``)
SOURCE_QUERY_PARAM: Final[str] = "source"

# Text control message sent to a rejected second source
SOURCE_CONFLICT_MESSAGE: Final[str] = "Another source is already connected"

# Close reasons
CLOSE_REASON_SOURCE_CONFLICT: Final[str] = "source already connected"
CLOSE_REASON_SLOW_LISTENER: Final[str] = "listener too slow"
CLOSE_REASON_SHUTDOWN: Final[str] = "relay shutting down"

# Environment Variable Names (from .env file)
ENV_RELAY_HOST: Final[str] = "RELAY_HOST"
ENV_RELAY_PORT: Final[str] = "RELAY_PORT"
ENV_RELAY_PATH: Final[str] = "RELAY_PATH"
ENV_MAX_MESSAGE_SIZE: Final[str] = "MAX_MESSAGE_SIZE"
ENV_PING_INTERVAL: Final[str] = "PING_INTERVAL"
ENV_PING_TIMEOUT: Final[str] = "PING_TIMEOUT"
ENV_LISTENER_QUEUE_SIZE: Final[str] = "LISTENER_QUEUE_SIZE"
ENV_HISTORY_BUFFER_BYTES: Final[str] = "HISTORY_BUFFER_BYTES"
ENV_LOG_LEVEL: Final[str] = "LOG_LEVEL"

# Default Values
DEFAULT_RELAY_HOST: Final[str] = "localhost"
DEFAULT_RELAY_PORT: Final[int] = 8765
DEFAULT_RELAY_PATH: Final[str] = "/ws"
DEFAULT_MAX_MESSAGE_SIZE: Final[int] = 2**20  # 1MB max message size
DEFAULT_LISTENER_QUEUE_SIZE: Final[int] = 256  # frames
DEFAULT_HISTORY_BUFFER_BYTES: Final[int] = 2**20  # 1MB rolling history
DEFAULT_RELAY_URL: Final[str] = "ws://localhost:8765/ws"
