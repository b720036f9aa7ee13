"""
Configuration management for the Audio Relay server.

Settings are read from the process environment, optionally seeded from a
``.env`` file, and collected into a single ``RelayConfig`` dataclass.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from ..core.types import (
    DEFAULT_HISTORY_BUFFER_BYTES,
    DEFAULT_LISTENER_QUEUE_SIZE,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_RELAY_HOST,
    DEFAULT_RELAY_PATH,
    DEFAULT_RELAY_PORT,
    ENV_HISTORY_BUFFER_BYTES,
    ENV_LISTENER_QUEUE_SIZE,
    ENV_LOG_LEVEL,
    ENV_MAX_MESSAGE_SIZE,
    ENV_PING_INTERVAL,
    ENV_PING_TIMEOUT,
    ENV_RELAY_HOST,
    ENV_RELAY_PATH,
    ENV_RELAY_PORT,
)
from ..infrastructure.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class RelayConfig:
    """Configuration for the audio relay server."""

    host: str = DEFAULT_RELAY_HOST
    port: int = DEFAULT_RELAY_PORT
    path: str = DEFAULT_RELAY_PATH

    # Transport limits
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0

    # Fan-out tuning
    listener_queue_size: int = DEFAULT_LISTENER_QUEUE_SIZE
    history_buffer_bytes: int = DEFAULT_HISTORY_BUFFER_BYTES

    log_level: str = "INFO"

    def __post_init__(self):
        """Validate values that cannot be fixed up silently."""
        if not self.path.startswith("/"):
            raise ConfigurationError(f"Relay path must start with '/': {self.path!r}")
        if not 0 <= self.port <= 65535:
            raise ConfigurationError(f"Invalid relay port: {self.port}")
        if self.listener_queue_size < 1:
            raise ConfigurationError("listener_queue_size must be at least 1")
        if self.history_buffer_bytes < 0:
            raise ConfigurationError("history_buffer_bytes cannot be negative")
        if self.max_message_size < 1:
            raise ConfigurationError("max_message_size must be at least 1")


class RelayConfigManager:
    """Loads ``RelayConfig`` from the environment."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self):
        """Load environment variables from file."""
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.debug(f"Environment file {self.env_file_path} not found")

    def _get_optional_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get optional environment variable."""
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        """
        Get an integer environment variable.

        Raises:
            ConfigurationError: If the value is not an integer
        """
        value = os.getenv(key)
        if value is None or value.strip() == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(
                f"Environment variable {key} must be an integer, got {value!r}"
            ) from None

    def _get_interval_env(self, key: str, default: float) -> Optional[float]:
        """
        Get a keepalive interval in seconds; ``0`` or ``none`` disables it.

        Raises:
            ConfigurationError: If the value is not a number
        """
        value = os.getenv(key)
        if value is None or value.strip() == "":
            return default
        if value.strip().lower() == "none":
            return None
        try:
            seconds = float(value)
        except ValueError:
            raise ConfigurationError(
                f"Environment variable {key} must be a number, got {value!r}"
            ) from None
        return seconds if seconds > 0 else None

    def get_config(self) -> RelayConfig:
        """
        Get the relay configuration.

        Returns:
            RelayConfig: Relay configuration

        Raises:
            ConfigurationError: If a value is malformed or out of range
        """
        try:
            config = RelayConfig(
                host=self._get_optional_env(ENV_RELAY_HOST, DEFAULT_RELAY_HOST),
                port=self._get_int_env(ENV_RELAY_PORT, DEFAULT_RELAY_PORT),
                path=self._get_optional_env(ENV_RELAY_PATH, DEFAULT_RELAY_PATH),
                max_message_size=self._get_int_env(
                    ENV_MAX_MESSAGE_SIZE, DEFAULT_MAX_MESSAGE_SIZE
                ),
                ping_interval=self._get_interval_env(ENV_PING_INTERVAL, 20.0),
                ping_timeout=self._get_interval_env(ENV_PING_TIMEOUT, 20.0),
                listener_queue_size=self._get_int_env(
                    ENV_LISTENER_QUEUE_SIZE, DEFAULT_LISTENER_QUEUE_SIZE
                ),
                history_buffer_bytes=self._get_int_env(
                    ENV_HISTORY_BUFFER_BYTES, DEFAULT_HISTORY_BUFFER_BYTES
                ),
                log_level=self._get_optional_env(ENV_LOG_LEVEL, "INFO").upper(),
            )
        except ConfigurationError as e:
            logger.error(f"Failed to load configuration: {e}")
            raise

        logger.info("Configuration loaded successfully")
        return config
