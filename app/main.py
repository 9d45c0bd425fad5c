from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from broker.subscriber import build_default_subscriber
from logging_config import configure_logging
from services.broadcast import build_default_hub
from services.ingestion import build_default_coordinator
from settings import get_settings
from storage.history import build_default_history

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    hub = build_default_hub()
    hub.bind(asyncio.get_running_loop())
    subscriber = build_default_subscriber()
    subscriber.start()
    try:
        yield
    finally:
        subscriber.stop()
        await hub.close()
        stats = build_default_coordinator().stats
        logger.info(
            "Ingestion stopped",
            extra={"received": stats.received, "accepted": stats.accepted, "rejected": stats.rejected},
        )
        for factory in (
            build_default_subscriber,
            build_default_coordinator,
            build_default_hub,
            build_default_history,
        ):
            factory.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Telemetry Dashboard",
        description="Relays MQTT telemetry readings to live web viewers.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)

    static_dir = get_settings().static_dir
    if static_dir and Path(static_dir).is_dir():
        # Mounted last so API and WebSocket routes take precedence over "/".
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    return app

app = create_app()
