"""
Cache en memoria con expiración (TTL).

Estado compartido solo dentro del event loop: no usa locks.
"""

import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Diccionario {key: {"data": ..., "timestamp": float}} con vencimiento."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Obtiene un resultado del cache si existe y no ha expirado."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        if self._clock() - entry["timestamp"] >= self.ttl_seconds:
            del self._entries[key]
            return default
        return entry["data"]

    def set(self, key: str, data: Any) -> None:
        """Guarda un resultado en el cache."""
        self._entries[key] = {"data": data, "timestamp": self._clock()}

    def clear(self) -> None:
        self._entries.clear()
