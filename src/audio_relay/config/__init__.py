"""
Configuration management for the Audio Relay system.

This package provides the relay configuration dataclass and the
environment / ``.env`` loader that produces it.
"""

from .settings import RelayConfig, RelayConfigManager

__all__ = [
    "RelayConfig",
    "RelayConfigManager",
]
