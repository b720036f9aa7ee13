"""
Utility functions for connection management.

This module provides request classification and bulk shutdown helpers for
the WebSocket relay server.
"""

import asyncio
import logging
from typing import Iterable
from urllib.parse import parse_qs, urlsplit

from websockets.frames import CloseCode
from websockets.http11 import Request

from ....core.types import CLOSE_REASON_SHUTDOWN, SOURCE_QUERY_PARAM, Role
from ...core import Connection


class ConnectionUtils:
    """Utility functions for connection management."""

    @staticmethod
    def request_path(request: Request) -> str:
        """Path component of the upgrade request, without the query string."""
        return urlsplit(request.path).path

    @staticmethod
    def classify(request: Request) -> Role:
        """
        Decide the role of a new connection from its upgrade request.

        Exactly ``?source=true`` marks a source. Anything else, including
        ``TRUE`` or a missing parameter, is a listener.
        """
        query = parse_qs(urlsplit(request.path).query)
        values = query.get(SOURCE_QUERY_PARAM, [])
        if values and values[0] == "true":
            return Role.SOURCE
        return Role.LISTENER

    @staticmethod
    async def close_all(
        connections: Iterable[Connection],
        logger: logging.Logger,
        code: int = CloseCode.GOING_AWAY,
        reason: str = CLOSE_REASON_SHUTDOWN,
    ) -> int:
        """
        Close every given connection concurrently.

        Returns:
            Number of connections closed
        """
        connections = list(connections)
        if not connections:
            return 0

        results = await asyncio.gather(
            *(conn.close(code, reason) for conn in connections),
            return_exceptions=True,
        )
        for conn, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.error(f"Error closing {conn.connection_id}: {result}")

        return len(connections)
