"""
Pytest configuration and shared fixtures for the Audio Relay test suite.

This module provides common fixtures and configuration for all tests.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from audio_relay.config.settings import RelayConfig
from audio_relay.core.types import Role
from audio_relay.websockets.core import Connection
from audio_relay.websockets.server import AudioRelayServer


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket connection for testing."""
    websocket = MagicMock()
    websocket.remote_address = ("127.0.0.1", 12345)
    websocket.send = AsyncMock()
    websocket.recv = AsyncMock()
    websocket.close = AsyncMock()
    return websocket


@pytest.fixture
def make_websocket():
    """Factory for independent mock WebSocket connections."""

    def _make(port: int = 12345):
        websocket = MagicMock()
        websocket.remote_address = ("127.0.0.1", port)
        websocket.send = AsyncMock()
        websocket.recv = AsyncMock()
        websocket.close = AsyncMock()
        return websocket

    return _make


@pytest.fixture
def make_listener(make_websocket):
    """
    Factory for listener connections over mock WebSockets.

    Must be called from a running event loop, since connections own an
    asyncio queue and writer task.
    """
    counter = iter(range(20000, 30000))

    def _make(queue_size: int = 16) -> Connection:
        return Connection(make_websocket(next(counter)), Role.LISTENER, queue_size)

    return _make


@pytest.fixture
def mock_connection():
    """Factory for mock connections used by the lock-guarded collections."""
    counter = iter(range(1, 10000))

    def _make(role: Role = Role.LISTENER):
        conn = MagicMock(spec=Connection)
        conn.role = role
        conn.connection_id = f"{role.value}-mock-{next(counter)}"
        return conn

    return _make


@pytest.fixture
def wait_until():
    """Poll a condition while letting the event loop run."""

    async def _wait(condition, timeout: float = 2.0, interval: float = 0.005):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not condition():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait


@pytest.fixture
def relay_config():
    """Relay configuration bound to an ephemeral loopback port."""
    return RelayConfig(
        host="127.0.0.1",
        port=0,
        ping_interval=None,
        ping_timeout=None,
        history_buffer_bytes=0,
    )


@pytest_asyncio.fixture
async def relay_server(relay_config):
    """A running relay server, stopped after the test."""
    server = AudioRelayServer(relay_config)
    assert await server.start()
    yield server
    await server.stop()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
