"""
Control message handling for the WebSocket relay server.

The relay defines a single control notification: the text message sent to a
second source that tries to connect while another one is active. Text sent by
clients carries no meaning and is ignored.
"""

import logging
from typing import Union

from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode

from ....core.types import CLOSE_REASON_SOURCE_CONFLICT, SOURCE_CONFLICT_MESSAGE
from ...core import Connection


class ControlMessageHandler:
    """Handles text control traffic between the relay and its clients."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    async def reject_source(self, conn: Connection) -> None:
        """Tell a second source the slot is taken, then close it."""
        self.logger.warning(
            f"Rejecting source {conn.connection_id} from {conn.remote_address}: "
            f"another source is already connected"
        )
        try:
            await conn.send_text(SOURCE_CONFLICT_MESSAGE)
        except ConnectionClosed:
            self.logger.debug(
                f"Source {conn.connection_id} closed before rejection was sent"
            )
        finally:
            await conn.close(CloseCode.POLICY_VIOLATION, CLOSE_REASON_SOURCE_CONFLICT)

    def process_control_message(
        self, conn: Connection, message: Union[str, bytes]
    ) -> None:
        """Ignore client text traffic, keeping a trace at debug level."""
        self.logger.debug(
            f"Ignoring {len(message)}-character text message from {conn.connection_id}"
        )
