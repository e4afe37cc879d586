"""
Endpoints del backend de agendamiento (especialidades, médicos, agendas
y catálogos) expuestos sobre el gateway.
"""

import asyncio
from urllib.parse import quote

from app.schemas.agenda import ApiResponse
from app.services.api_gateway import ApiGateway
from app.services.normalization import extract_list


def _segment(value: str | int) -> str:
    return quote(str(value), safe="")


class HospitalApi:
    """Llamadas tipadas al backend. Todas retornan ApiResponse."""

    def __init__(self, gateway: ApiGateway):
        self.gateway = gateway

    # ── Especialidades ───────────────────────────────

    async def get_especialidades_agenda(self, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request("/especialidades/agenda", cancel_event=cancel_event)

    async def get_especialidad(
        self, especialidad_id: str | int, *, cancel_event: asyncio.Event | None = None
    ) -> ApiResponse:
        return await self.gateway.request(
            f"/especialidades/{_segment(especialidad_id)}", cancel_event=cancel_event
        )

    # ── Médicos ──────────────────────────────────────

    async def get_doctores(
        self, *, cancel_event: asyncio.Event | None = None, use_cache: bool = True
    ) -> ApiResponse:
        return await self.gateway.request("/medico/agenda", cancel_event=cancel_event, use_cache=use_cache)

    async def get_doctor(self, doctor_id: str | int, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request(f"/medico/agenda/{_segment(doctor_id)}", cancel_event=cancel_event)

    async def get_doctores_por_especialidad(
        self, especialidad_id: str | int, *, cancel_event: asyncio.Event | None = None
    ) -> ApiResponse:
        return await self.gateway.request(
            f"/medico/especialidad/{_segment(especialidad_id)}", cancel_event=cancel_event
        )

    # ── Agendas ──────────────────────────────────────

    async def get_agendas(self, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request("/agnd-agenda", cancel_event=cancel_event)

    async def get_agendas_por_medico(
        self,
        codigo_prestador: str,
        *,
        cancel_event: asyncio.Event | None = None,
        use_cache: bool = True,
    ) -> ApiResponse:
        """
        Agendas de un prestador. El backend acepta `codigo_prestador` o
        `cd_prestador` según la versión: se prueba el primero y, si no trae
        datos, el segundo. Nunca se mezclan ambos resultados.
        """
        code = _segment(codigo_prestador)
        first = await self.gateway.request(
            f"/agnd-agenda?codigo_prestador={code}", cancel_event=cancel_event, use_cache=use_cache
        )
        if first.success and extract_list(first.data):
            return first

        second = await self.gateway.request(
            f"/agnd-agenda?cd_prestador={code}", cancel_event=cancel_event, use_cache=use_cache
        )
        if extract_list(second.data):
            return second

        # Ninguno trajo datos: se conserva el estado/mensaje del primero
        return first if first.success else second

    # ── Catálogos ────────────────────────────────────

    async def get_consultorios(self, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request("/catalogos/consultorios", cancel_event=cancel_event)

    async def get_dias(self, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request("/catalogos/dias", cancel_event=cancel_event)

    async def get_edificios(self, *, cancel_event: asyncio.Event | None = None) -> ApiResponse:
        return await self.gateway.request("/catalogos/edificios", cancel_event=cancel_event)

    async def get_pisos_edificio(
        self, codigo_edificio: str, *, cancel_event: asyncio.Event | None = None
    ) -> ApiResponse:
        return await self.gateway.request(
            f"/catalogos/edificios/{_segment(codigo_edificio)}/pisos", cancel_event=cancel_event
        )
