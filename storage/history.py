from __future__ import annotations

from collections import deque
from functools import lru_cache
from threading import Lock
from typing import Deque, Optional

from models.records import Reading
from settings import get_settings


class HistoryBuffer:
    """Fixed-capacity store of the most recent readings, oldest first."""

    def __init__(self, capacity: int = 200) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be a positive integer.")
        self._capacity = capacity
        self._items: Deque[Reading] = deque(maxlen=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, reading: Reading) -> None:
        # deque(maxlen=...) drops the oldest entry within the same append
        with self._lock:
            self._items.append(reading)

    def snapshot(self) -> list[Reading]:
        """Return a point-in-time copy of the buffered readings."""

        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@lru_cache
def build_default_history(capacity: Optional[int] = None) -> HistoryBuffer:
    settings = get_settings()
    size = settings.history_capacity if capacity is None else capacity
    return HistoryBuffer(capacity=size)
