"""
Endpoints de médicos: búsqueda sobre la lista cacheada y agendas detalladas.
"""

import asyncio

from fastapi import APIRouter, Depends, Path, Query, Response

from app.api.deps import CLIENT_CLOSED_REQUEST, get_cancel_event, get_doctors_cache, get_hospital_api
from app.core.exceptions import ValidationException
from app.schemas.agenda import AgendaDetalladaResponse
from app.schemas.directory import DoctorsCacheState, DoctorSearchResponse
from app.services import directory_service
from app.services.agenda_service import get_agendas_detalladas_por_medico
from app.services.doctors_cache import DoctorsCache
from app.services.hospital_api import HospitalApi

router = APIRouter()


@router.get(
    "",
    response_model=DoctorSearchResponse,
    summary="Buscar médicos",
    description=(
        "Busca por nombre (sin acentos) o especialidad. Sin término de búsqueda "
        "retorna la lista paginada en orden alfabético."
    ),
)
async def search_doctors(
    q: str = Query("", description="Nombre o especialidad"),
    page: int = Query(0, ge=0, description="Página (desde 0)"),
    doctors_cache: DoctorsCache = Depends(get_doctors_cache),
) -> DoctorSearchResponse:
    return await directory_service.search_doctors(doctors_cache, q, page)


@router.post("/refresh", response_model=DoctorsCacheState)
async def refresh_doctors(
    doctors_cache: DoctorsCache = Depends(get_doctors_cache),
) -> DoctorsCacheState:
    """Descarta el cache de médicos y recarga la lista desde el backend."""
    return await doctors_cache.refresh_doctors()


@router.get(
    "/{provider}/agendas",
    response_model=AgendaDetalladaResponse,
    summary="Agendas detalladas de un prestador",
    responses={CLIENT_CLOSED_REQUEST: {"description": "El cliente cerró la conexión antes de la respuesta"}},
)
async def get_doctor_agendas(
    provider: str = Path(..., description="Código de prestador"),
    especialidad: list[str] | None = Query(None, description="Filtrar por uno o más especialidadId"),
    api: HospitalApi = Depends(get_hospital_api),
    cancel_event: asyncio.Event = Depends(get_cancel_event),
):
    """
    Agendas del prestador con consultorio, edificio, piso, día y especialidad.
    `success` es false si alguna consulta al backend falló; los datos
    disponibles se retornan igual.
    """
    if not provider.strip():
        raise ValidationException("Código de prestador requerido")

    result = await get_agendas_detalladas_por_medico(
        api, provider.strip(), especialidad, cancel_event=cancel_event
    )
    if cancel_event.is_set():
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return AgendaDetalladaResponse(data=result.data, success=result.success, message=result.message)
