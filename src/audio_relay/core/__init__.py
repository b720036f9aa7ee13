"""
Core types for the Audio Relay system.

This package contains the connection roles, protocol constants and defaults
shared by the server, the client and the configuration layer.
"""

from .types import AudioFrame, Role, SOURCE_CONFLICT_MESSAGE, SOURCE_QUERY_PARAM

__all__ = [
    "AudioFrame",
    "Role",
    "SOURCE_CONFLICT_MESSAGE",
    "SOURCE_QUERY_PARAM",
]
