"""HTTP and WebSocket route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from app.schemas import HealthStatus, ReadingOut
from broker.subscriber import MQTTSubscriber, build_default_subscriber
from services.broadcast import BroadcastHub, build_default_hub
from services.ingestion import IngestionCoordinator, build_default_coordinator
from storage.history import HistoryBuffer, build_default_history

router = APIRouter()


def get_history() -> HistoryBuffer:
    return build_default_history()


def get_hub() -> BroadcastHub:
    return build_default_hub()


def get_coordinator() -> IngestionCoordinator:
    return build_default_coordinator()


def get_subscriber() -> MQTTSubscriber:
    return build_default_subscriber()


@router.get(
    "/api/readings",
    response_model=list[ReadingOut],
    summary="Snapshot of the retained readings, oldest first.",
)
async def list_readings(
    history: HistoryBuffer = Depends(get_history),
) -> list[ReadingOut]:
    return [ReadingOut.from_reading(reading) for reading in history.snapshot()]


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    history: HistoryBuffer = Depends(get_history),
    hub: BroadcastHub = Depends(get_hub),
    coordinator: IngestionCoordinator = Depends(get_coordinator),
    subscriber: MQTTSubscriber = Depends(get_subscriber),
) -> HealthStatus:
    stats = coordinator.stats
    return HealthStatus(
        broker_connected=subscriber.is_connected,
        viewers=hub.viewer_count,
        buffered=len(history),
        capacity=history.capacity,
        received=stats.received,
        accepted=stats.accepted,
        rejected=stats.rejected,
    )


@router.websocket("/ws")
async def reading_stream(
    websocket: WebSocket,
    hub: BroadcastHub = Depends(get_hub),
    history: HistoryBuffer = Depends(get_history),
) -> None:
    """Live feed: one ``reading`` event per accepted message."""
    await websocket.accept()
    viewer = hub.register(websocket)
    try:
        # Sent before the sender task starts so it always arrives first.
        await websocket.send_json({"event": "welcome", "capacity": history.capacity})
        hub.start(viewer)
        while True:
            # Viewers have nothing to say; reading keeps disconnects observable.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unregister(viewer)
