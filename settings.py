from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BROKER_URL_ENV = "MQTT_URL"
_BROKER_USER_ENV = "MQTT_USER"
_BROKER_PASS_ENV = "MQTT_PASS"
_TOPIC_ENV = "MQTT_TOPIC"
_HISTORY_CAPACITY_ENV = "HISTORY_CAPACITY"
_VIEWER_QUEUE_ENV = "VIEWER_QUEUE_SIZE"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_STATIC_DIR_ENV = "STATIC_DIR"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    broker_url: str
    broker_username: Optional[str]
    broker_password: Optional[str]
    topic: str
    history_capacity: int
    viewer_queue_size: int
    host: str
    port: int
    static_dir: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        broker_url=_read_str_env(_BROKER_URL_ENV, "mqtt://localhost:1883"),
        broker_username=_read_optional_env(_BROKER_USER_ENV, None),
        broker_password=_read_optional_env(_BROKER_PASS_ENV, None),
        topic=_read_str_env(_TOPIC_ENV, "esp32/temperatura"),
        history_capacity=_read_positive_int(_HISTORY_CAPACITY_ENV, 200),
        viewer_queue_size=_read_positive_int(_VIEWER_QUEUE_ENV, 100),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3000),
        static_dir=_read_optional_env(_STATIC_DIR_ENV, "./public"),
        log_level=_read_log_level("INFO"),
    )
