"""
Servicio del directorio: arma las vistas que consume el kiosko.

Resuelve especialidades y médicos por id o slug, construye el horario
semanal de un médico, lista/busca médicos y arma el tablero de agendas.
Las fallas de resolución se lanzan como NotFoundException; las del backend
que impiden armar la vista, como UpstreamException.
"""

import asyncio
import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from app.core.cache import TTLCache
from app.core.exceptions import NotFoundException, UpstreamException
from app.schemas.agenda import AgendaBoardResponse, AgendaDetallada, ApiResponse
from app.schemas.directory import (
    DoctorInfo,
    DoctorItem,
    DoctorScheduleEntry,
    DoctorScheduleView,
    DoctorSearchResponse,
    SpecialtyDoctorsResponse,
    SpecialtyItem,
    SpecialtyLabel,
    VisitKind,
)
from app.services.agenda_service import get_agendas_detalladas_por_medico
from app.services.doctors_cache import DoctorsCache
from app.services.hospital_api import HospitalApi
from app.services.normalization import (
    DAY_NAMES,
    DAYS_OF_WEEK,
    DOCTOR_NAME_FIELDS,
    DOCTOR_PHOTO_FIELDS,
    NUMERIC_ID,
    SPECIALTY_FIELDS,
    as_text,
    create_consultorio_map,
    create_day_name_map,
    enrich_agendas_with_consultorio_data,
    extract_list,
    extract_hhmm,
    filter_agendas_by_location,
    format_hhmm_12h,
    is_consulta,
    is_procedure,
    normalize_agenda,
    normalize_day_key,
    normalize_specialties,
    pick,
    pick_text,
    slugify,
    specialty_id,
    strip_accents,
)

logger = logging.getLogger(__name__)

_SPECIALTIES_KEY = "especialidades_agenda"

LOAD_ERROR = "Error al cargar los datos. Intente nuevamente más tarde."


def _require(response: ApiResponse, detail: str = LOAD_ERROR) -> Any:
    """Datos de una respuesta exitosa; si falló, UpstreamException."""
    if not response.success:
        logger.warning("%s (%s)", detail, response.message)
        raise UpstreamException(detail)
    return response.data


def _sort_key(text: str) -> str:
    return strip_accents(text).casefold()


def _is_cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


# ─────────────────────────────────────────────────────
# Especialidades
# ─────────────────────────────────────────────────────


async def list_specialties(
    api: HospitalApi,
    cache: TTLCache,
    search: str | None = None,
    *,
    cancel_event: asyncio.Event | None = None,
) -> list[SpecialtyItem]:
    """
    Catálogo de especialidades con descripción, ordenado alfabéticamente.
    Se guarda en el cache recibido y se filtra por texto (sin distinguir mayúsculas).
    """
    items = cache.get(_SPECIALTIES_KEY)
    if items is None:
        response = await api.get_especialidades_agenda(cancel_event=cancel_event)
        data = _require(response, "Error al cargar las especialidades. Intente nuevamente más tarde.")

        items = []
        for esp in extract_list(data):
            if not isinstance(esp, Mapping) or not esp.get("descripcion"):
                continue
            esp_id = pick(esp, SPECIALTY_FIELDS["id"])
            if esp_id is None:
                continue
            items.append(SpecialtyItem(
                especialidad_id=esp_id if isinstance(esp_id, int) else as_text(esp_id),
                descripcion=as_text(esp["descripcion"]),
                slug=slugify(esp["descripcion"]),
                piso=as_text(esp.get("piso")) or None,
                icono=as_text(esp.get("icono")) or None,
                tipo=as_text(esp.get("tipo")) or None,
            ))
        items.sort(key=lambda item: _sort_key(item.descripcion))
        cache.set(_SPECIALTIES_KEY, items)

    if search:
        term = search.lower()
        return [item for item in items if term in item.descripcion.lower()]
    return list(items)


def _with_specialty_id(esp: Mapping[str, Any], fallback: Any = None) -> dict:
    """Copia de la especialidad con su id (cualquier alias) en especialidadId."""
    found = dict(esp)
    esp_id = pick(found, SPECIALTY_FIELDS["id"])
    found["especialidadId"] = esp_id if esp_id is not None else fallback
    return found


async def resolve_specialty(
    api: HospitalApi,
    specialty: str,
    *,
    cancel_event: asyncio.Event | None = None,
) -> dict:
    """Especialidad por id numérico o por slug de su descripción."""
    if NUMERIC_ID.match(specialty):
        response = await api.get_especialidad(specialty, cancel_event=cancel_event)
        data = _require(response, "Error al cargar especialidad")
        if not isinstance(data, Mapping) or not data.get("descripcion"):
            raise NotFoundException("Especialidad", "Especialidad no encontrada")
        return _with_specialty_id(data, int(specialty))

    response = await api.get_especialidades_agenda(cancel_event=cancel_event)
    data = _require(response, "Error al cargar especialidad")
    wanted = slugify(specialty)
    for esp in extract_list(data):
        if isinstance(esp, Mapping) and slugify(esp.get("descripcion")) == wanted:
            return _with_specialty_id(esp)
    raise NotFoundException("Especialidad", "Especialidad no encontrada")


# ─────────────────────────────────────────────────────
# Médicos
# ─────────────────────────────────────────────────────


async def resolve_doctor(
    api: HospitalApi,
    doctor: str,
    specialty: Mapping[str, Any],
    *,
    cancel_event: asyncio.Event | None = None,
) -> tuple[dict, Any]:
    """
    Médico por id numérico o por slug de su nombre dentro de la especialidad.

    Returns:
        (detalle del médico, id usado para resolverlo)
    """
    if NUMERIC_ID.match(doctor):
        response = await api.get_doctor(doctor, cancel_event=cancel_event)
        data = _require(response, "Error al cargar médico")
        if not isinstance(data, Mapping):
            raise NotFoundException("Médico", "Médico no encontrado")
        return dict(data), data.get("id", doctor)

    response = await api.get_doctores_por_especialidad(
        specialty_id(specialty), cancel_event=cancel_event
    )
    data = _require(response, "Error al cargar médico")
    wanted = slugify(doctor)
    found = next(
        (
            d for d in extract_list(data)
            if isinstance(d, Mapping) and slugify(pick(d, DOCTOR_NAME_FIELDS)) == wanted
        ),
        None,
    )
    if found is None:
        raise NotFoundException("Médico", "Médico no encontrado")

    detail = await api.get_doctor(as_text(found.get("id")), cancel_event=cancel_event)
    detail_data = _require(detail, "Error al cargar médico")
    if not isinstance(detail_data, Mapping):
        raise NotFoundException("Médico", "Médico no encontrado")
    return dict(detail_data), found.get("id")


def to_doctor_item(doctor: Any) -> DoctorItem | None:
    """Médico crudo → DoctorItem; None si no tiene nombre."""
    if not isinstance(doctor, Mapping):
        return None
    name = pick_text(doctor, DOCTOR_NAME_FIELDS)
    if not name.strip():
        return None

    especialidades = normalize_specialties(doctor.get("especialidades"))
    if not especialidades:
        single = pick_text(doctor, ("especialidadId", "especialidad"))
        if single.strip():
            especialidades = [{"id": single, "label": single}]

    primary = especialidades[0] if especialidades else {"id": "", "label": ""}
    photo = pick(doctor, DOCTOR_PHOTO_FIELDS)
    return DoctorItem(
        id=pick_text(doctor, ("id", "codigo", "codigo_prestador", "codigoPrestador")),
        name=name,
        specialty_id=primary["id"],
        specialty_label=primary["label"],
        especialidades=[SpecialtyLabel(**esp) for esp in especialidades],
        photo=as_text(photo) if photo else None,
    )


def _has_specialty(doctor: Mapping[str, Any], wanted_id: str) -> bool:
    especialidades = doctor.get("especialidades")
    if not isinstance(especialidades, list):
        return False
    return any(specialty_id(esp) == wanted_id for esp in especialidades)


async def _doctor_details(
    api: HospitalApi,
    doctor_ids: Iterable[int],
    cancel_event: asyncio.Event | None,
) -> list[dict]:
    """Detalle de cada médico en paralelo; los que fallan se omiten."""
    responses = await asyncio.gather(
        *(api.get_doctor(doctor_id, cancel_event=cancel_event) for doctor_id in doctor_ids)
    )
    return [dict(r.data) for r in responses if r.success and isinstance(r.data, Mapping)]


async def list_specialty_doctors(
    api: HospitalApi,
    specialty: str,
    *,
    cancel_event: asyncio.Event | None = None,
) -> SpecialtyDoctorsResponse:
    """Médicos que atienden la especialidad (por id o slug)."""
    found = await resolve_specialty(api, specialty, cancel_event=cancel_event)
    resolved_id = specialty_id(found) or specialty

    response = await api.get_doctores(cancel_event=cancel_event)
    doctors = extract_list(_require(response, "Error al cargar los doctores. Intente nuevamente más tarde."))

    # El backend puede devolver solo ids: se pide el detalle de cada uno
    if doctors and all(isinstance(d, int) and not isinstance(d, bool) for d in doctors):
        doctors = await _doctor_details(api, doctors, cancel_event)

    items = []
    for doctor in doctors:
        if isinstance(doctor, Mapping) and _has_specialty(doctor, resolved_id):
            item = to_doctor_item(doctor)
            if item is not None:
                items.append(item)

    return SpecialtyDoctorsResponse(
        specialty_name=as_text(found.get("descripcion")),
        resolved_specialty_id=resolved_id,
        doctors=items,
    )


async def search_doctors(
    doctors_cache: DoctorsCache,
    query: str = "",
    page: int = 0,
    page_size: int | None = None,
) -> DoctorSearchResponse:
    """
    Búsqueda sobre la lista cacheada de médicos, por nombre (sin acentos)
    o especialidad principal. Sin término, pagina en orden alfabético.
    """
    page_size = page_size or doctors_cache.page_size
    state = await doctors_cache.load_doctors()

    items = [item for item in (to_doctor_item(d) for d in state.doctors) if item is not None]
    items.sort(key=lambda item: _sort_key(item.name))

    term = query.strip()
    if term:
        needle = strip_accents(term).lower()
        matches = [
            item for item in items
            if needle in strip_accents(item.name).lower() or needle in item.specialty_label.lower()
        ]
        return DoctorSearchResponse(
            doctors=matches,
            total=len(matches),
            is_from_cache=state.is_from_cache,
            error=state.error,
        )

    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(page, 0), total_pages - 1)
    start = page * page_size
    return DoctorSearchResponse(
        doctors=items[start:start + page_size],
        total=len(items),
        page=page,
        total_pages=total_pages,
        is_from_cache=state.is_from_cache,
        error=state.error,
    )


# ─────────────────────────────────────────────────────
# Horario semanal del médico
# ─────────────────────────────────────────────────────


def build_weekly_schedule(detalladas: Iterable[AgendaDetallada]) -> dict[str, list[DoctorScheduleEntry]]:
    """Agrupa las agendas por día canónico; días desconocidos se descartan."""
    by_day: dict[str, list[DoctorScheduleEntry]] = {}
    for item in detalladas:
        day_key = normalize_day_key(item.dia_nombre)
        if day_key not in DAYS_OF_WEEK:
            continue

        start = format_hhmm_12h(extract_hhmm(item.hora_inicio_hhmm or item.hora_inicio))
        end = format_hhmm_12h(extract_hhmm(item.hora_fin_hhmm or item.hora_fin))
        by_day.setdefault(day_key, []).append(DoctorScheduleEntry(
            time=f"{start} - {end}" if end else start,
            room=item.consultorio_descripcion,
            building=item.edificio_descripcion or item.building_code,
            floor=item.piso or item.piso_descripcion or None,
            tipo=item.tipo_texto or None,
            specialty_label=item.especialidad or None,
        ))

    return {day: by_day[day] for day in DAYS_OF_WEEK if day in by_day}


def schedule_days(schedules: Mapping[str, list[DoctorScheduleEntry]]) -> tuple[list[str], list[str], list[str]]:
    """(días disponibles, días con consulta, días con procedimiento)."""
    available = [day for day in DAYS_OF_WEEK if schedules.get(day)]
    consulta = [day for day in available if any(is_consulta(s.tipo) for s in schedules[day])]
    procedimiento = [day for day in available if any(is_procedure(s.tipo) for s in schedules[day])]
    return available, consulta, procedimiento


def auto_select_day_and_kind(
    schedules: Mapping[str, list[DoctorScheduleEntry]],
    today_key: str,
) -> tuple[str | None, VisitKind | None]:
    """
    Preselecciona hoy si el médico atiende hoy, o el único día disponible.
    El tipo se fija solo cuando ese día ofrece un único tipo de atención.
    """
    available = [day for day in DAYS_OF_WEEK if schedules.get(day)]
    if today_key in available:
        day = today_key
    elif len(available) == 1:
        day = available[0]
    else:
        return None, None

    has_consulta = any(is_consulta(s.tipo) for s in schedules[day])
    has_procedimiento = any(is_procedure(s.tipo) for s in schedules[day])
    if has_consulta and not has_procedimiento:
        return day, "consulta"
    if has_procedimiento and not has_consulta:
        return day, "procedimiento"
    return day, None


async def load_doctor_schedule(
    api: HospitalApi,
    doctor: str,
    specialty: str,
    *,
    source: str | None = None,
    today: date | None = None,
    cancel_event: asyncio.Event | None = None,
) -> DoctorScheduleView | None:
    """
    Horario semanal de un médico dentro de una especialidad.

    Con source == "specialty" las agendas se filtran por la especialidad
    desde la que se llegó. Si la carga se cancela retorna None.
    """
    try:
        found_specialty = await resolve_specialty(api, specialty, cancel_event=cancel_event)
        doctor_data, doctor_id = await resolve_doctor(api, doctor, found_specialty, cancel_event=cancel_event)
    except UpstreamException:
        # Una petición cancelada también llega como falla del backend
        if _is_cancelled(cancel_event):
            return None
        raise

    especialidades = normalize_specialties(doctor_data.get("especialidades"))
    if not especialidades:
        single_id = pick_text(found_specialty, ("especialidadId", "especialidad"))
        especialidades = [{
            "id": single_id,
            "label": pick_text(found_specialty, SPECIALTY_FIELDS["label"]) or single_id,
        }]

    photo = pick(doctor_data, DOCTOR_PHOTO_FIELDS)
    doctor_info = DoctorInfo(
        id=doctor_data.get("id"),
        name=pick_text(doctor_data, DOCTOR_NAME_FIELDS),
        specialty=as_text(found_specialty.get("descripcion")),
        specialty_id=found_specialty.get("especialidadId"),
        especialidades=[SpecialtyLabel(**esp) for esp in especialidades],
        photo=as_text(photo) if photo else None,
    )

    provider = pick(doctor_data, ("codigoPrestador", "codigo_prestador"))
    if provider is None:
        provider = doctor_id

    specialty_filter = found_specialty.get("especialidadId") if source == "specialty" else None
    result = await get_agendas_detalladas_por_medico(
        api, as_text(provider), specialty_filter, cancel_event=cancel_event
    )

    if _is_cancelled(cancel_event):
        return None

    schedules = build_weekly_schedule(result.data or [])
    available, consulta, procedimiento = schedule_days(schedules)
    today_key = DAYS_OF_WEEK[(today or date.today()).weekday()]
    selected_day, selected_kind = auto_select_day_and_kind(schedules, today_key)

    return DoctorScheduleView(
        doctor=doctor_info,
        schedules=schedules,
        available_days=available,
        consulta_days=consulta,
        procedimiento_days=procedimiento,
        day_names=DAY_NAMES,
        selected_day=selected_day,
        selected_kind=selected_kind,
        source=source,
        complete=result.success,
        message=result.message,
    )


# ─────────────────────────────────────────────────────
# Tablero de agendas
# ─────────────────────────────────────────────────────


def _records(payload: Any) -> list[dict]:
    return [dict(r) for r in extract_list(payload) if isinstance(r, Mapping)]


async def load_agenda_board(
    api: HospitalApi,
    edificio: str = "",
    piso: str = "",
    *,
    cancel_event: asyncio.Event | None = None,
) -> AgendaBoardResponse:
    """Todas las agendas enriquecidas con consultorio y día, filtradas por edificio/piso."""
    agendas_res, consultorios_res, dias_res, edificios_res = await asyncio.gather(
        api.get_agendas(cancel_event=cancel_event),
        api.get_consultorios(cancel_event=cancel_event),
        api.get_dias(cancel_event=cancel_event),
        api.get_edificios(cancel_event=cancel_event),
    )
    if not all(r.success for r in (agendas_res, consultorios_res, dias_res, edificios_res)):
        raise UpstreamException("Error al cargar datos de agendas o catálogos")

    agendas = [normalize_agenda(a) for a in _records(agendas_res.data)]
    consultorios = _records(consultorios_res.data)
    dias = _records(dias_res.data)
    edificios = _records(edificios_res.data)

    pisos: list[Any] = []
    if edificio:
        pisos_res = await api.get_pisos_edificio(edificio, cancel_event=cancel_event)
        pisos = extract_list(_require(pisos_res, "Error al cargar pisos del edificio"))

    enriched = enrich_agendas_with_consultorio_data(
        agendas, create_consultorio_map(consultorios), create_day_name_map(dias)
    )
    return AgendaBoardResponse(
        agendas=filter_agendas_by_location(enriched, edificio, piso),
        consultorios=consultorios,
        dias=dias,
        edificios=edificios,
        pisos=pisos,
        edificio=edificio,
        piso=piso,
    )
