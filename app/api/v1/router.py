"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.agendas import router as agendas_router
from app.api.v1.buildings import router as buildings_router
from app.api.v1.doctors import router as doctors_router
from app.api.v1.specialties import router as specialties_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    specialties_router,
    prefix="/specialties",
    tags=["Especialidades"],
)

api_v1_router.include_router(
    doctors_router,
    prefix="/doctors",
    tags=["Médicos"],
)

api_v1_router.include_router(
    agendas_router,
    prefix="/agendas",
    tags=["Agendas"],
)

api_v1_router.include_router(
    buildings_router,
    prefix="/buildings",
    tags=["Edificios"],
)
