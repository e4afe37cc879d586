"""
Cache de la lista de médicos.

Se guarda como JSON {doctors, timestamp, sessionId} en un almacenamiento
clave/valor de texto y se sirve sin red mientras tenga menos de 24 horas.
Es una optimización de sesión: la aplicación lo limpia al cerrarse.
"""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable
from typing import Protocol

from app.config import Settings, get_settings
from app.schemas.directory import DoctorsCacheState
from app.services.hospital_api import HospitalApi
from app.services.normalization import extract_list

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Almacenamiento de texto en memoria del proceso."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


def generate_session_id(clock: Callable[[], float] = time.time) -> str:
    return f"session_{int(clock() * 1000)}_{uuid.uuid4().hex[:9]}"


class DoctorsCache:
    """Lista de médicos con cache persistido de 24 horas."""

    def __init__(
        self,
        api: HospitalApi,
        storage: KeyValueStorage | None = None,
        settings: Settings | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        settings = settings or get_settings()
        self.api = api
        self.storage = storage or MemoryStorage()
        self.cache_key = settings.DOCTORS_CACHE_KEY
        self.ttl_seconds = settings.DOCTORS_CACHE_TTL_SECONDS
        self.page_size = settings.DOCTORS_PAGE_SIZE
        self._clock = clock
        self.state = DoctorsCacheState(loading=False)

    def _read_cache(self) -> list | None:
        """Lista cacheada vigente, o None. Un cache corrupto cuenta como miss."""
        cached = self.storage.get_item(self.cache_key)
        if not cached:
            return None
        try:
            parsed = json.loads(cached)
            timestamp = parsed.get("timestamp")
            doctors = parsed.get("doctors")
        except (ValueError, AttributeError) as exc:
            logger.warning("Error al parsear caché de médicos: %s", exc)
            return None

        if not isinstance(timestamp, (int, float)) or not timestamp or not isinstance(doctors, list):
            return None
        # timestamp en milisegundos
        if self._clock() * 1000 - timestamp >= self.ttl_seconds * 1000:
            return None
        return doctors

    def _write_cache(self, doctors: list) -> None:
        entry = {
            "doctors": doctors,
            "timestamp": int(self._clock() * 1000),
            "sessionId": generate_session_id(self._clock),
        }
        try:
            self.storage.set_item(self.cache_key, json.dumps(entry))
        except (TypeError, ValueError, OSError) as exc:
            logger.warning("Error al guardar en caché de médicos: %s", exc)

    async def load_doctors(
        self,
        cancel_event: asyncio.Event | None = None,
        *,
        use_cache: bool = True,
    ) -> DoctorsCacheState:
        """Carga la lista desde el cache vigente o desde el backend."""
        previous = self.state
        self.state = self.state.model_copy(update={"loading": True, "error": None})

        cached = self._read_cache()
        if cached is not None:
            self.state = DoctorsCacheState(doctors=cached, loading=False, is_from_cache=True)
            return self.state

        response = await self.api.get_doctores(cancel_event=cancel_event, use_cache=use_cache)

        # Una carga cancelada no modifica el estado visible
        if cancel_event is not None and cancel_event.is_set():
            self.state = previous
            return previous

        if not response.success:
            self.state = self.state.model_copy(update={
                "loading": False,
                "error": response.message or "Error cargando médicos",
            })
            return self.state

        doctors = extract_list(response.data)
        self._write_cache(doctors)
        self.state = DoctorsCacheState(doctors=doctors, loading=False, is_from_cache=False)
        return self.state

    async def refresh_doctors(self, cancel_event: asyncio.Event | None = None) -> DoctorsCacheState:
        """Ignora y borra el cache antes de recargar."""
        self.clear_cache()
        return await self.load_doctors(cancel_event, use_cache=False)

    def clear_cache(self) -> None:
        self.storage.remove_item(self.cache_key)
