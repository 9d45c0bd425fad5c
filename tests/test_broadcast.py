from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from models.records import Reading
from services.broadcast import BroadcastHub, Viewer


class FakeWebSocket:
    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def send_json(self, data: Dict[str, Any]) -> None:
        self.sent.append(data)


class ClosedWebSocket:
    async def send_json(self, data: Dict[str, Any]) -> None:
        raise RuntimeError("socket closed")


def _reading(ts: int) -> Reading:
    return Reading(timestamp=ts, temperature=None, humidity=None, raw={"ts": ts})


def test_emit_without_bound_loop_is_a_no_op() -> None:
    hub = BroadcastHub()

    hub.emit(_reading(1))

    assert hub.viewer_count == 0


def test_full_viewer_queue_drops_oldest_message() -> None:
    async def scenario() -> List[int]:
        viewer = Viewer("v1", FakeWebSocket(), queue_size=2)  # type: ignore[arg-type]
        for ts in (1, 2, 3):
            viewer.offer({"ts": ts})
        assert viewer.dropped == 1
        return [viewer.queue.get_nowait()["ts"] for _ in range(viewer.queue.qsize())]

    assert asyncio.run(scenario()) == [2, 3]


def test_emit_fans_out_to_every_viewer_in_order() -> None:
    async def scenario() -> tuple[FakeWebSocket, FakeWebSocket, int]:
        hub = BroadcastHub(queue_size=10)
        hub.bind(asyncio.get_running_loop())
        sockets = (FakeWebSocket(), FakeWebSocket())
        for socket in sockets:
            hub.start(hub.register(socket))  # type: ignore[arg-type]

        for ts in (1, 2, 3):
            hub.emit(_reading(ts))
        for _ in range(20):
            await asyncio.sleep(0)
        count = hub.viewer_count
        await hub.close()
        return sockets[0], sockets[1], count

    first, second, count = asyncio.run(scenario())

    assert count == 2
    for socket in (first, second):
        assert [message["data"]["ts"] for message in socket.sent] == [1, 2, 3]
        assert all(message["event"] == "reading" for message in socket.sent)


def test_dead_viewer_does_not_block_others() -> None:
    async def scenario() -> tuple[FakeWebSocket, Viewer]:
        hub = BroadcastHub(queue_size=1)
        hub.bind(asyncio.get_running_loop())
        dead = hub.register(ClosedWebSocket())  # type: ignore[arg-type]
        hub.start(dead)
        alive_socket = FakeWebSocket()
        hub.start(hub.register(alive_socket))  # type: ignore[arg-type]

        for ts in range(5):
            hub.emit(_reading(ts))
            for _ in range(5):
                await asyncio.sleep(0)
        await hub.unregister(dead)
        await hub.close()
        return alive_socket, dead

    alive_socket, dead = asyncio.run(scenario())

    assert dead.connected is False
    assert [message["data"]["ts"] for message in alive_socket.sent] == [0, 1, 2, 3, 4]
