"""
Unit tests for the Broadcaster fan-out.
"""

import logging

import pytest
from websockets.frames import CloseCode

from audio_relay.audio.buffers import AudioHistoryBuffer
from audio_relay.websockets.core import ListenerRegistry
from audio_relay.websockets.server.process_messages import Broadcaster

logger = logging.getLogger(__name__)


@pytest.fixture
def registry():
    return ListenerRegistry()


@pytest.fixture
def broadcaster(registry):
    return Broadcaster(registry, logger)


class TestBroadcaster:
    """Test cases for Broadcaster class."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fan_out_reaches_every_listener(
        self, broadcaster, make_listener, wait_until
    ):
        """Every registered listener receives the frame bit for bit."""
        listeners = [make_listener() for _ in range(3)]
        for listener in listeners:
            listener.start_writer()
            broadcaster.add_listener(listener)

        delivered = broadcaster.broadcast(b"\xaa\xbb")

        assert delivered == 3
        for listener in listeners:
            await wait_until(lambda: listener.websocket.send.await_count == 1)
            listener.websocket.send.assert_awaited_once_with(b"\xaa\xbb")
            await listener.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_frames_keep_source_order(self, broadcaster, make_listener, wait_until):
        """Frames reach a listener in the order they were broadcast."""
        listener = make_listener()
        listener.start_writer()
        broadcaster.add_listener(listener)

        for frame in (b"1", b"2", b"3", b"4"):
            broadcaster.broadcast(frame)

        await wait_until(lambda: listener.websocket.send.await_count == 4)
        sent = [call.args[0] for call in listener.websocket.send.await_args_list]
        assert sent == [b"1", b"2", b"3", b"4"]
        await listener.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_listener_is_dropped_alone(
        self, broadcaster, registry, make_listener, wait_until
    ):
        """A listener with a full queue is removed; the others still get the frame."""
        healthy = [make_listener() for _ in range(2)]
        slow = make_listener(queue_size=1)
        for listener in healthy + [slow]:
            broadcaster.add_listener(listener)
        # No writer on the slow listener, so its single slot stays occupied
        assert slow.offer(b"backlog")

        delivered = broadcaster.broadcast(b"frame")

        assert delivered == 2
        assert slow not in registry
        assert all(listener in registry for listener in healthy)
        assert all(listener.pending == 1 for listener in healthy)
        await wait_until(lambda: slow.websocket.close.await_count == 1)
        assert slow.websocket.close.await_args.args[0] == CloseCode.TRY_AGAIN_LATER
        assert broadcaster.get_stats()["listeners_dropped"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_closing_listener_is_dropped(self, broadcaster, registry, make_listener):
        """A listener already shutting down is removed on the next broadcast."""
        closing, healthy = make_listener(), make_listener()
        broadcaster.add_listener(closing)
        broadcaster.add_listener(healthy)
        await closing.close()

        assert broadcaster.broadcast(b"frame") == 1
        assert registry.snapshot() == [healthy]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_unregisters_listener(
        self, broadcaster, registry, make_listener, wait_until
    ):
        """A listener whose send fails leaves the registry without another broadcast."""
        broken, healthy = make_listener(), make_listener()
        broken.websocket.send.side_effect = RuntimeError("socket exploded")
        for listener in (broken, healthy):
            listener.start_writer()
            broadcaster.add_listener(listener)

        broadcaster.broadcast(b"x")

        await wait_until(lambda: broken.websocket.close.await_count == 1)
        assert broken not in registry
        assert registry.snapshot() == [healthy]
        assert broken.websocket.close.await_args.args[0] == CloseCode.INTERNAL_ERROR
        assert broadcaster.get_stats()["listeners_dropped"] == 1
        await healthy.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_broadcast_without_listeners(self, broadcaster):
        """Broadcasting to nobody is fine and still counted."""
        assert broadcaster.broadcast(b"frame") == 0

        stats = broadcaster.get_stats()
        assert stats["frames_broadcast"] == 1
        assert stats["bytes_broadcast"] == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remove_listener_is_idempotent(self, broadcaster, registry, make_listener):
        """Removing a listener twice is harmless."""
        listener = make_listener()
        broadcaster.add_listener(listener)

        assert broadcaster.remove_listener(listener) is True
        assert broadcaster.remove_listener(listener) is False
        assert len(registry) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_new_listener_seeded_from_history(self, registry, make_listener):
        """A late listener is primed with the most recent frames that fit."""
        history = AudioHistoryBuffer(max_bytes=1024)
        broadcaster = Broadcaster(registry, logger, history)
        for i in range(6):
            broadcaster.broadcast(bytes([i]))

        listener = make_listener(queue_size=8)
        seeded = broadcaster.add_listener(listener)

        # Half of the queue is used for history
        assert seeded == 4
        assert listener.pending == 4
        assert listener in registry

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_history_disabled_by_default(self, broadcaster, make_listener):
        """Without a history buffer new listeners start empty."""
        broadcaster.broadcast(b"early")
        listener = make_listener()

        assert broadcaster.add_listener(listener) == 0
        assert listener.pending == 0
