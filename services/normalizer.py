"""Turn raw broker payloads into :class:`Reading` records."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Optional

from models.records import Reading


class NormalizationError(ValueError):
    """Raised when a payload cannot be turned into a reading."""


class MalformedPayload(NormalizationError):
    """The payload is not a UTF-8 encoded JSON object."""


def current_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: Any) -> Optional[float]:
    if not _is_number(value):
        return None
    try:
        converted = float(value)
    except OverflowError:
        return None
    return converted if math.isfinite(converted) else None


def _finite_millis(value: Any) -> Optional[int]:
    if not _is_number(value):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _decode(payload: bytes) -> dict[str, Any]:
    try:
        text = payload.decode("utf-8")
        data = json.loads(text, parse_constant=_reject_constant)
    except UnicodeDecodeError as exc:
        raise MalformedPayload("payload is not valid UTF-8") from exc
    except ValueError as exc:
        raise MalformedPayload(f"payload is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedPayload(
            f"payload must be a JSON object, got {type(data).__name__}"
        )
    return data


def normalize(
    payload: bytes,
    clock: Callable[[], int] = current_millis,
) -> Reading:
    """Decode ``payload`` and map its ``ts``/``temp``/``hum`` fields.

    Only undecodable payloads are rejected. A missing or non-numeric field is
    treated as absent data: ``ts`` falls back to ``clock()`` and ``temp`` or
    ``hum`` become ``None``. Strings are never coerced to numbers, and values
    too large for a float count as non-numeric. Nested objects and arrays in
    ``raw`` are frozen as read-only mappings and tuples.
    """
    data = _decode(payload)

    ts = _finite_millis(data.get("ts"))

    return Reading(
        timestamp=ts if ts is not None else clock(),
        temperature=_finite_float(data.get("temp")),
        humidity=_finite_float(data.get("hum")),
        raw=_freeze(data),
    )
