"""
Infrastructure components for the Audio Relay system.

This package contains infrastructure concerns including:
- Logging configuration and utilities with production controls
- Custom exception definitions
"""

from .logging import setup_logging, get_logger, LoggingContext
from .logging_manager import LoggingManager, Environment
from .exceptions import (
    AudioRelayError,
    ConfigurationError,
    NetworkError,
    WebSocketError,
    SourceConflictError,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "LoggingContext",
    "LoggingManager",
    "Environment",
    # Exceptions
    "AudioRelayError",
    "ConfigurationError",
    "NetworkError",
    "WebSocketError",
    "SourceConflictError",
]
