"""Publish synthetic readings shaped like the ESP32 firmware's payloads."""

from __future__ import annotations

import json
import logging
import random
import time
from typing import Callable, Optional
from uuid import uuid4

from broker.subscriber import build_client, parse_broker_url
from services.normalizer import current_millis

logger = logging.getLogger(__name__)


def build_payload(
    rng: random.Random,
    clock: Callable[[], int] = current_millis,
    base_temp: float = 22.0,
    base_hum: float = 50.0,
) -> bytes:
    """Encode one ``{"temp", "hum", "ts"}`` sample, values rounded to 2 decimals."""
    sample = {
        "temp": round(base_temp + rng.uniform(-1.5, 1.5), 2),
        "hum": round(base_hum + rng.uniform(-5.0, 5.0), 2),
        "ts": clock(),
    }
    return json.dumps(sample).encode("utf-8")


def publish_readings(
    url: str,
    topic: str,
    count: int,
    interval: float,
    username: Optional[str] = None,
    password: Optional[str] = None,
    seed: Optional[int] = None,
) -> int:
    """Connect, publish ``count`` samples ``interval`` seconds apart, disconnect.

    Returns the number of messages the broker acknowledged.
    """
    endpoint = parse_broker_url(url)
    client = build_client(
        endpoint,
        f"telemetry-simulator-{uuid4().hex[:8]}",
        username=username,
        password=password,
    )
    rng = random.Random(seed)
    client.connect(endpoint.host, endpoint.port, keepalive=60)
    client.loop_start()
    published = 0
    try:
        for index in range(count):
            info = client.publish(topic, build_payload(rng), qos=1)
            info.wait_for_publish(timeout=10)
            if info.is_published():
                published += 1
            else:
                logger.warning("Publish not acknowledged", extra={"topic": topic})
            if index + 1 < count:
                time.sleep(interval)
    finally:
        client.disconnect()
        client.loop_stop()
    logger.info("Simulated readings published", extra={"topic": topic, "accepted": published})
    return published
