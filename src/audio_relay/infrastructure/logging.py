"""
Centralized logging configuration for the Audio Relay system.

This module provides consistent logging setup across all relay components
using YAML configuration with production controls.
"""

import logging
from typing import Optional

from .logging_manager import setup_logging as _setup_logging, get_logger as _get_logger


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for a relay component.

    Args:
        component_name: Name of the component (e.g., 'relay_server', 'relay_client')
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). If None,
                  uses environment-appropriate level:
                  Development=DEBUG, Staging=INFO, Production=WARNING
        log_file: Optional log file path (if None, uses YAML config)

    Returns:
        logging.Logger: Configured logger instance
    """
    return _setup_logging(component_name, log_level, log_file)


class LoggingContext:
    """Context manager for temporary logging configuration."""

    def __init__(self, logger: logging.Logger, level: int):
        self.logger = logger
        self.original_level = logger.level
        self.new_level = level

    def __enter__(self):
        self.logger.setLevel(self.new_level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.setLevel(self.original_level)


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return _get_logger(component_name)
