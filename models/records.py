"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(item) for item in value]
    return value


@dataclass(frozen=True, slots=True)
class Reading:
    """A single normalized telemetry sample received from the broker.

    ``raw`` is read-only all the way down when built by the normalizer:
    nested objects are mapping proxies and arrays are tuples.
    """

    timestamp: int
    temperature: Optional[float]
    humidity: Optional[float]
    raw: Mapping[str, Any]

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation shared by the snapshot API and live broadcasts."""
        return {
            "ts": self.timestamp,
            "temp": self.temperature,
            "hum": self.humidity,
            "raw": _thaw(self.raw),
        }
