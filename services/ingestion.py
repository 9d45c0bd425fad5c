"""Per-message ingestion pipeline: normalize, retain, broadcast."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Callable, Optional

from models.records import Reading
from services.broadcast import BroadcastSink, build_default_hub
from services.normalizer import NormalizationError, normalize
from storage.history import HistoryBuffer, build_default_history

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionStats:
    received: int = 0
    accepted: int = 0
    rejected: int = 0


class IngestionCoordinator:
    """Feeds subscription payloads through the normalizer into history and sink."""

    def __init__(
        self,
        history: HistoryBuffer,
        sink: BroadcastSink,
        normalizer: Callable[[bytes], Reading] = normalize,
    ) -> None:
        self.history = history
        self.sink = sink
        self._normalize = normalizer
        self._lock = Lock()
        self._received = 0
        self._accepted = 0
        self._rejected = 0

    def on_message(self, payload: bytes) -> Optional[Reading]:
        """Process one inbound payload; returns the accepted reading, if any."""
        with self._lock:
            self._received += 1
            try:
                reading = self._normalize(payload)
            except NormalizationError as exc:
                self._rejected += 1
                logger.warning(
                    "Dropping invalid payload",
                    extra={
                        "reason": str(exc),
                        "payload": bytes(payload).decode("utf-8", errors="replace"),
                    },
                )
                return None

            self.history.append(reading)
            self._accepted += 1
            self.sink.emit(reading)

        logger.debug(
            "Accepted reading ts=%s temp=%s hum=%s",
            reading.timestamp,
            reading.temperature,
            reading.humidity,
        )
        return reading

    @property
    def stats(self) -> IngestionStats:
        with self._lock:
            return IngestionStats(
                received=self._received,
                accepted=self._accepted,
                rejected=self._rejected,
            )


@lru_cache
def build_default_coordinator() -> IngestionCoordinator:
    """Factory that wires the coordinator with the shared history and hub."""
    return IngestionCoordinator(history=build_default_history(), sink=build_default_hub())
