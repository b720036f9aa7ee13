"""
Unit tests for the Connection wrapper.
"""

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode

from audio_relay.core.types import Role
from audio_relay.websockets.core import Connection


class TestConnection:
    """Test cases for Connection class."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_identity(self, mock_websocket):
        """A connection keeps its role and gets a role-prefixed id."""
        conn = Connection(mock_websocket, Role.SOURCE, queue_size=4)

        assert conn.role is Role.SOURCE
        assert conn.connection_id.startswith("source-")
        assert conn.remote_address == ("127.0.0.1", 12345)
        assert conn.is_open

    @pytest.mark.unit
    def test_queue_size_must_be_positive(self, mock_websocket):
        """A zero-capacity outbound queue is refused."""
        with pytest.raises(ValueError):
            Connection(mock_websocket, Role.LISTENER, queue_size=0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offer_fails_when_queue_full(self, mock_websocket):
        """Offers succeed up to the queue capacity, then fail without blocking."""
        conn = Connection(mock_websocket, Role.LISTENER, queue_size=2)

        assert conn.offer(b"one") is True
        assert conn.offer(b"two") is True
        assert conn.offer(b"three") is False
        assert conn.pending == 2
        assert conn.get_status()["frames_rejected"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_writer_sends_frames_in_order(self, mock_websocket, wait_until):
        """The writer task drains queued frames onto the transport in FIFO order."""
        conn = Connection(mock_websocket, Role.LISTENER, queue_size=8)
        conn.start_writer()

        for frame in (b"\x01", b"\x02", b"\x03"):
            assert conn.offer(frame)

        await wait_until(lambda: mock_websocket.send.await_count == 3)
        sent = [call.args[0] for call in mock_websocket.send.await_args_list]
        assert sent == [b"\x01", b"\x02", b"\x03"]
        assert conn.pending == 0

        await conn.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, mock_websocket):
        """Closing twice closes the transport once."""
        conn = Connection(mock_websocket, Role.LISTENER)
        conn.start_writer()

        await conn.close(CloseCode.GOING_AWAY, "bye")
        await conn.close()

        mock_websocket.close.assert_awaited_once_with(CloseCode.GOING_AWAY, "bye")
        assert not conn.is_open
        assert conn.offer(b"late") is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_soon_schedules_close(self, mock_websocket, wait_until):
        """close_soon refuses new frames immediately and closes in the background."""
        conn = Connection(mock_websocket, Role.LISTENER)

        conn.close_soon(CloseCode.TRY_AGAIN_LATER, "slow")

        assert conn.offer(b"frame") is False
        await wait_until(lambda: mock_websocket.close.await_count == 1)
        mock_websocket.close.assert_awaited_once_with(CloseCode.TRY_AGAIN_LATER, "slow")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_closes_connection(self, mock_websocket, wait_until):
        """An unexpected send error tears the connection down."""
        mock_websocket.send.side_effect = RuntimeError("socket exploded")
        conn = Connection(mock_websocket, Role.LISTENER)
        conn.start_writer()

        conn.offer(b"frame")

        await wait_until(lambda: mock_websocket.close.await_count == 1)
        assert not conn.is_open
        assert mock_websocket.close.await_args.args[0] == CloseCode.INTERNAL_ERROR

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_callback(self, mock_websocket, wait_until):
        """The failure callback runs with the connection before it closes."""
        mock_websocket.send.side_effect = RuntimeError("socket exploded")
        failed = []
        conn = Connection(
            mock_websocket, Role.LISTENER, on_write_failure=failed.append
        )
        conn.start_writer()

        conn.offer(b"frame")

        await wait_until(lambda: mock_websocket.close.await_count == 1)
        assert failed == [conn]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_closed_transport_stops_writer(self, mock_websocket, wait_until):
        """A transport closed by the peer ends the writer quietly."""
        mock_websocket.send.side_effect = ConnectionClosed(None, None)
        conn = Connection(mock_websocket, Role.LISTENER)
        conn.start_writer()

        conn.offer(b"frame")

        await wait_until(lambda: conn._writer_task.done())
        mock_websocket.close.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_recv_and_send_text_delegate(self, mock_websocket):
        """recv and send_text go straight to the transport."""
        mock_websocket.recv.return_value = b"\xaa"
        conn = Connection(mock_websocket, Role.SOURCE)

        assert await conn.recv() == b"\xaa"
        await conn.send_text("hello")

        mock_websocket.send.assert_awaited_once_with("hello")
