"""
Tablero de agendas por edificio y piso.
"""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_hospital_api
from app.schemas.agenda import AgendaBoardResponse
from app.services import directory_service
from app.services.hospital_api import HospitalApi

router = APIRouter()


@router.get("", response_model=AgendaBoardResponse)
async def get_agenda_board(
    edificio: str = Query("", description="Código de edificio"),
    piso: str = Query("", description="Código de piso"),
    api: HospitalApi = Depends(get_hospital_api),
) -> AgendaBoardResponse:
    """Todas las agendas con catálogos; con edificio se incluyen sus pisos."""
    return await directory_service.load_agenda_board(api, edificio, piso)
