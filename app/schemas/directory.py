"""
Schemas del directorio: especialidades, médicos y horario semanal.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

VisitKind = Literal["consulta", "procedimiento"]


class SpecialtyLabel(BaseModel):
    """Par (id, etiqueta) de una especialidad asociada a un médico."""
    id: str
    label: str


class SpecialtyItem(BaseModel):
    """Especialidad del catálogo de agenda."""
    especialidad_id: int | str
    descripcion: str
    slug: str
    piso: str | None = None
    icono: str | None = None
    tipo: str | None = None


class DoctorItem(BaseModel):
    """Médico para listados y búsqueda."""
    id: str
    name: str
    specialty_id: str = ""
    specialty_label: str = ""
    especialidades: list[SpecialtyLabel] = []
    photo: str | None = None


class DoctorInfo(BaseModel):
    """Cabecera del médico en la vista de horarios."""
    id: Any = None
    name: str = ""
    specialty: str = ""
    specialty_id: Any = None
    especialidades: list[SpecialtyLabel] = []
    photo: str | None = None


class DoctorScheduleEntry(BaseModel):
    """Un bloque de atención en un día de la semana."""
    time: str
    room: str = ""
    building: str = ""
    floor: str | None = None
    tipo: str | None = None
    specialty_label: str | None = None


class DoctorScheduleView(BaseModel):
    """Horario semanal consolidado de un médico."""
    doctor: DoctorInfo
    schedules: dict[str, list[DoctorScheduleEntry]]
    available_days: list[str]
    consulta_days: list[str]
    procedimiento_days: list[str]
    day_names: dict[str, str]
    selected_day: str | None = None
    selected_kind: VisitKind | None = None
    source: str | None = None
    complete: bool = True
    message: str | None = None


class SpecialtyDoctorsResponse(BaseModel):
    """Médicos que atienden una especialidad."""
    specialty_name: str
    resolved_specialty_id: str
    doctors: list[DoctorItem]


class DoctorSearchResponse(BaseModel):
    """Resultado de búsqueda/paginación sobre la lista cacheada de médicos."""
    doctors: list[DoctorItem]
    total: int
    page: int = 0
    total_pages: int = 1
    is_from_cache: bool = False
    error: str | None = None


class DoctorsCacheState(BaseModel):
    """Estado del cache de médicos (doctors, loading, error, is_from_cache)."""
    doctors: list[Any] = Field(default_factory=list)
    loading: bool = False
    error: str | None = None
    is_from_cache: bool = False


class BuildingDisplayName(BaseModel):
    code: str | None = None
    display_name: str
