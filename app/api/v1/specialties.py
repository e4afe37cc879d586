"""
Endpoints de especialidades: catálogo, médicos por especialidad y
horario semanal de un médico.
"""

import asyncio

from fastapi import APIRouter, Depends, Path, Query, Response

from app.api.deps import CLIENT_CLOSED_REQUEST, get_cancel_event, get_hospital_api, get_specialties_cache
from app.core.cache import TTLCache
from app.schemas.directory import DoctorScheduleView, SpecialtyDoctorsResponse, SpecialtyItem
from app.services import directory_service
from app.services.hospital_api import HospitalApi

router = APIRouter()


@router.get(
    "",
    response_model=list[SpecialtyItem],
    summary="Listar especialidades",
    description="Especialidades con agenda, en orden alfabético. Cacheadas en memoria (60 segundos).",
)
async def list_specialties(
    q: str | None = Query(None, description="Texto a buscar en la descripción"),
    api: HospitalApi = Depends(get_hospital_api),
    cache: TTLCache = Depends(get_specialties_cache),
) -> list[SpecialtyItem]:
    return await directory_service.list_specialties(api, cache, q)


@router.get("/{specialty}/doctors", response_model=SpecialtyDoctorsResponse)
async def list_specialty_doctors(
    specialty: str = Path(..., description="Id numérico o slug de la especialidad", examples=["cardiologia"]),
    api: HospitalApi = Depends(get_hospital_api),
) -> SpecialtyDoctorsResponse:
    """Médicos que atienden la especialidad."""
    return await directory_service.list_specialty_doctors(api, specialty)


@router.get(
    "/{specialty}/doctors/{doctor}/schedule",
    response_model=DoctorScheduleView,
    summary="Horario semanal de un médico",
    responses={CLIENT_CLOSED_REQUEST: {"description": "El cliente cerró la conexión antes de la respuesta"}},
)
async def get_doctor_schedule(
    specialty: str = Path(..., description="Id numérico o slug de la especialidad"),
    doctor: str = Path(..., description="Id numérico o slug del nombre del médico"),
    source: str | None = Query(
        None, description="Con 'specialty' se muestran solo las agendas de esta especialidad"
    ),
    api: HospitalApi = Depends(get_hospital_api),
    cancel_event: asyncio.Event = Depends(get_cancel_event),
):
    """
    Resuelve especialidad y médico, consolida sus agendas por día y
    preselecciona el día (hoy o el único disponible) y el tipo de atención.
    """
    view = await directory_service.load_doctor_schedule(
        api, doctor, specialty, source=source, cancel_event=cancel_event
    )
    if view is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return view
