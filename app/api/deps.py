"""
Dependencias de FastAPI: clientes compartidos creados en el lifespan y
cancelación de la petición cuando el cliente se desconecta.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import Request

from app.core.cache import TTLCache
from app.services.doctors_cache import DoctorsCache
from app.services.hospital_api import HospitalApi

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5
# Respuesta para cargas canceladas: el cliente ya no la recibe
CLIENT_CLOSED_REQUEST = 499


def get_hospital_api(request: Request) -> HospitalApi:
    return request.app.state.hospital_api


def get_doctors_cache(request: Request) -> DoctorsCache:
    return request.app.state.doctors_cache


def get_specialties_cache(request: Request) -> TTLCache:
    return request.app.state.specialties_cache


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
    logger.info("Cliente desconectado en %s, cancelando la carga", request.url.path)
    cancel_event.set()


async def get_cancel_event(request: Request) -> AsyncGenerator[asyncio.Event, None]:
    """
    Evento de cancelación ligado a la conexión: se activa si el cliente
    cierra la conexión antes de recibir la respuesta.
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        yield cancel_event
    finally:
        watcher.cancel()
