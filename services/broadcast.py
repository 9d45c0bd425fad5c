"""Fan-out of accepted readings to connected WebSocket viewers."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol
from uuid import uuid4

from fastapi import WebSocket

from models.records import Reading
from settings import get_settings

logger = logging.getLogger(__name__)


class BroadcastSink(Protocol):
    def emit(self, reading: Reading) -> None:
        ...


class Viewer:
    """One connected client with its own outbound queue and sender task."""

    def __init__(self, viewer_id: str, websocket: WebSocket, queue_size: int) -> None:
        self.viewer_id = viewer_id
        self.websocket = websocket
        self.queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self.sender_task: Optional[asyncio.Task[None]] = None
        self.connected = True
        self.dropped = 0

    def offer(self, message: Dict[str, Any]) -> None:
        # A lagging viewer loses its oldest pending message; the producer never waits.
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self.dropped += 1
            logger.debug("Viewer %s is lagging; dropped oldest message", self.viewer_id)
        self.queue.put_nowait(message)

    async def run(self) -> None:
        try:
            while self.connected:
                message = await self.queue.get()
                try:
                    await self.websocket.send_json(message)
                except Exception as exc:  # noqa: BLE001 - socket closed underneath us
                    logger.debug("Viewer %s send failed: %s", self.viewer_id, exc)
                    break
        finally:
            self.connected = False

    async def stop(self) -> None:
        self.connected = False
        if self.sender_task is not None:
            self.sender_task.cancel()
            try:
                await self.sender_task
            except asyncio.CancelledError:
                pass


class BroadcastHub:
    """Thread-safe, non-blocking broadcast sink backed by an asyncio loop.

    ``emit`` may be called from any thread (paho delivers messages on its own
    network thread). The fan-out itself runs on the bound event loop, where
    every viewer is owned.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._viewers: Dict[str, Viewer] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def viewer_count(self) -> int:
        return len(self._viewers)

    def emit(self, reading: Reading) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No event loop bound; reading not broadcast")
            return
        message = {"event": "reading", "data": reading.to_payload()}
        try:
            loop.call_soon_threadsafe(self._fan_out, message)
        except RuntimeError:
            logger.debug("Event loop closed; reading not broadcast")

    def register(self, websocket: WebSocket) -> Viewer:
        viewer = Viewer(uuid4().hex, websocket, self.queue_size)
        self._viewers[viewer.viewer_id] = viewer
        logger.info("Viewer connected", extra={"viewers": self.viewer_count})
        return viewer

    def start(self, viewer: Viewer) -> None:
        viewer.sender_task = asyncio.create_task(viewer.run())

    async def unregister(self, viewer: Viewer) -> None:
        if self._viewers.pop(viewer.viewer_id, None) is None:
            return
        await viewer.stop()
        logger.info("Viewer disconnected", extra={"viewers": self.viewer_count})

    async def close(self) -> None:
        viewers = list(self._viewers.values())
        self._viewers.clear()
        for viewer in viewers:
            await viewer.stop()
        self._loop = None

    def _fan_out(self, message: Dict[str, Any]) -> None:
        for viewer in list(self._viewers.values()):
            if viewer.connected:
                viewer.offer(message)


@lru_cache
def build_default_hub(queue_size: Optional[int] = None) -> BroadcastHub:
    settings = get_settings()
    size = settings.viewer_queue_size if queue_size is None else queue_size
    return BroadcastHub(queue_size=size)
