"""
Nombres de edificios para mostrar en el kiosko.
"""

from fastapi import APIRouter

from app.schemas.directory import BuildingDisplayName
from app.services.normalization import get_building_display_name

router = APIRouter()


@router.get("/{code}/display-name", response_model=BuildingDisplayName)
async def get_display_name(code: str) -> BuildingDisplayName:
    return BuildingDisplayName(code=code, display_name=get_building_display_name(code))
