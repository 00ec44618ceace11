"""Tests for per-session outbound queues and writer tasks."""
import asyncio

import pytest
import pytest_asyncio

from chathub.chat.connections import ConnectionManager
from chathub.chat.hub import Outbound


class StubWebSocket:
    """Records sent frames; can be held on a gate or made to fail."""

    def __init__(self, gate=None, fail=False):
        self.accepted = False
        self.sent = []
        self.gate = gate
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


async def flush():
    """Let writer tasks run until they are idle."""
    for _ in range(10):
        await asyncio.sleep(0)


def broadcast(n, *targets):
    return Outbound("receive_message", {"n": n}, targets)


@pytest_asyncio.fixture
async def manager():
    connections = ConnectionManager(queue_size=2)
    yield connections
    connections.close_all()
    await flush()


class TestConnect:

    @pytest.mark.asyncio
    async def test_connect_accepts_and_assigns_fresh_ids(self, manager):
        ws1, ws2 = StubWebSocket(), StubWebSocket()
        sid1 = await manager.connect(ws1)
        sid2 = await manager.connect(ws2)
        assert ws1.accepted and ws2.accepted
        assert sid1 != sid2
        assert manager.get_connection_count() == 2
        assert manager.is_connected(sid1)

    @pytest.mark.asyncio
    async def test_frames_delivered_in_order(self, manager):
        ws = StubWebSocket()
        sid = await manager.connect(ws)
        for n in range(5):
            manager.send(sid, {"type": "receive_message", "n": n})
            await flush()
        assert [frame["n"] for frame in ws.sent] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_send_to_unknown_session(self, manager):
        assert manager.send("missing", {"type": "connected"}) is False


class TestDelivery:

    @pytest.mark.asyncio
    async def test_full_queue_drops_for_that_session_only(self, manager):
        gate = asyncio.Event()
        slow, fast = StubWebSocket(gate=gate), StubWebSocket()
        slow_id = await manager.connect(slow)
        fast_id = await manager.connect(fast)

        queued = []
        for n in range(5):
            queued.append(manager.deliver([broadcast(n, slow_id, fast_id)]))
            await flush()

        # frame 0 is held in the slow writer, 1 and 2 fill its queue
        assert queued == [2, 2, 2, 1, 1]
        assert [frame["n"] for frame in fast.sent] == [0, 1, 2, 3, 4]
        assert slow.sent == []

        gate.set()
        await flush()
        assert [frame["n"] for frame in slow.sent] == [0, 1, 2]
        assert manager.is_connected(slow_id)

    @pytest.mark.asyncio
    async def test_failed_send_stops_only_that_writer(self, manager):
        broken, healthy = StubWebSocket(fail=True), StubWebSocket()
        broken_id = await manager.connect(broken)
        healthy_id = await manager.connect(healthy)

        manager.deliver([broadcast(0, broken_id, healthy_id)])
        await flush()
        assert not manager.is_connected(broken_id)
        assert manager.send(broken_id, {"type": "receive_message"}) is False

        assert manager.deliver([broadcast(1, broken_id, healthy_id)]) == 1
        await flush()
        assert [frame["n"] for frame in healthy.sent] == [0, 1]

    @pytest.mark.asyncio
    async def test_disconnect_discards_queue_and_refuses_sends(self, manager):
        gate = asyncio.Event()
        ws = StubWebSocket(gate=gate)
        sid = await manager.connect(ws)
        manager.send(sid, {"type": "receive_message", "n": 0})
        manager.send(sid, {"type": "receive_message", "n": 1})

        manager.disconnect(sid)
        await flush()
        assert manager.send(sid, {"type": "receive_message", "n": 2}) is False
        assert manager.get_connection_count() == 0

        gate.set()
        await flush()
        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_disconnect_unknown_is_harmless(self, manager):
        manager.disconnect("missing")
        assert manager.get_connection_count() == 0

    @pytest.mark.asyncio
    async def test_close_all(self, manager):
        await manager.connect(StubWebSocket())
        await manager.connect(StubWebSocket())
        manager.close_all()
        await flush()
        assert manager.get_connection_count() == 0
