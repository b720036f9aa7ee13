"""
Test suite for the Audio Relay system.

This package contains tests organized by type:
- Unit tests for individual components
- Integration tests running a real relay on an ephemeral port
- Test fixtures and utilities
"""
