"""
Custom exceptions for the Audio Relay system.

This module defines the exceptions raised by the relay server, its
configuration layer and the relay client.
"""


class AudioRelayError(Exception):
    """Base exception for all Audio Relay related errors."""

    pass


class ConfigurationError(AudioRelayError):
    """Raised when there are configuration-related errors."""

    pass


class NetworkError(AudioRelayError):
    """Raised when there are network communication errors."""

    pass


class WebSocketError(NetworkError):
    """Raised when there are WebSocket communication errors."""

    pass


class SourceConflictError(WebSocketError):
    """
    Raised when the relay rejects a source because another one is active.

    This is terminal for the connection attempt; callers must back off
    before trying again.
    """

    pass
