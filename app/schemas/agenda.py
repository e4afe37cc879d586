"""
Schemas Pydantic para respuestas del backend, consultorios normalizados
y agendas detalladas por médico.
"""

from typing import Any

from pydantic import BaseModel, Field

# Los códigos del backend llegan como texto o número según la versión
RawCode = Any


class ApiResponse(BaseModel):
    """Resultado normalizado de una llamada al backend. Nunca lanza."""

    data: Any = None
    success: bool
    message: str | None = None


class ConsultorioNormalizado(BaseModel):
    """Consultorio con los alias de campos del backend ya resueltos."""

    codigo_consultorio: str
    codigo_edificio: str | None = None
    piso: RawCode = None
    des_piso: str | None = None
    descripcion_consultorio: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class AgendaDetallada(BaseModel):
    """
    Agenda del médico unida con consultorio, edificio, piso, día y especialidad.
    Conserva los campos crudos de AGND_AGENDA junto a los decodificados.
    """

    # ── Datos crudos de AGND_AGENDA ─────────────────
    codigo_item_agendamiento: RawCode = None
    codigo_prestador: RawCode = None
    codigo_dia: RawCode = None
    hora_inicio: RawCode = None
    hora_fin: RawCode = None
    tipo: str | None = None
    codigo_consultorio: RawCode = None

    # ── Datos procesados y decodificados ─────────────
    especialidad: str | None = None
    medico: str = ""
    dia_nombre: str = ""
    hora_inicio_hhmm: str = ""
    hora_fin_hhmm: str = ""
    consultorio_descripcion: str = ""
    consultorio_codigo: str | None = None
    edificio_descripcion: str = ""
    tipo_texto: str = ""

    # ── Ubicación para la UI ─────────────────────────
    piso: str = ""
    piso_descripcion: str = ""
    building_code: str = ""


class AgendaDetalladaResponse(BaseModel):
    """Respuesta del endpoint de agendas detalladas."""

    data: list[AgendaDetallada]
    success: bool
    message: str | None = None


class AgendaBoardResponse(BaseModel):
    """Tablero de agendas con catálogos y filtros de edificio/piso."""

    agendas: list[dict[str, Any]]
    consultorios: list[dict[str, Any]]
    dias: list[dict[str, Any]]
    edificios: list[dict[str, Any]]
    pisos: list[Any] = []
    edificio: str = ""
    piso: str = ""
