"""
Orquestación de agendas detalladas por médico.

Combina en paralelo agendas del prestador, médicos, consultorios, edificios
y días, más los pisos de cada edificio, y produce una AgendaDetallada por
cada agenda que pertenece realmente al médico solicitado.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from app.schemas.agenda import AgendaDetallada, ApiResponse, ConsultorioNormalizado
from app.services.hospital_api import HospitalApi
from app.services.normalization import (
    AGENDA_FIELDS,
    CONSULTORIO_FIELDS,
    DOCTOR_NAME_FIELDS,
    NUMERIC_ID,
    as_text,
    building_description,
    consultorio_building_code,
    create_building_map,
    create_day_name_map,
    create_doctor_map,
    create_floor_map,
    decode_dia_nombre,
    decode_tipo,
    extract_list,
    normalize_consultorio,
    pick,
    pick_text,
    specialty_id,
    specialty_label,
    to_hhmm,
)

logger = logging.getLogger(__name__)

SpecialtyFilter = str | int | float | list | tuple | set | None


def _wanted_specialty_ids(especialidad_id: SpecialtyFilter) -> list[str] | None:
    if especialidad_id is None:
        return None
    if isinstance(especialidad_id, (list, tuple, set)):
        return [as_text(value) for value in especialidad_id]
    return [as_text(especialidad_id)]


def _item_agendamiento(agenda: Mapping[str, Any]) -> str:
    return pick_text(agenda, AGENDA_FIELDS["item_agendamiento"]).strip()


def _filter_by_specialty(agendas: list[dict], wanted: list[str]) -> list[dict]:
    """El codigo_item_agendamiento ES el especialidadId de la agenda."""
    kept = []
    for agenda in agendas:
        code = _item_agendamiento(agenda)
        if code and NUMERIC_ID.match(code) and code in wanted:
            kept.append(agenda)
    return kept


def _find_specialty_label(especialidades: list, code: str) -> str | None:
    for esp in especialidades:
        if specialty_id(esp) == code:
            return specialty_label(esp)
    return None


def _specialty_for_agenda(
    medico: Mapping[str, Any] | None,
    agenda: Mapping[str, Any],
    wanted: list[str] | None,
) -> str | None:
    """
    Especialidad de la agenda:
    1. con filtro activo, la del médico cuyo id coincide con el item de agendamiento;
    2. la misma coincidencia sin requerir filtro;
    3. la primera especialidad del médico.
    """
    especialidades = medico.get("especialidades") if isinstance(medico, Mapping) else None
    if not isinstance(especialidades, list) or not especialidades:
        return None

    code = _item_agendamiento(agenda)
    label = None
    if wanted is not None and code and code in wanted:
        label = _find_specialty_label(especialidades, code)
    if not label and code:
        label = _find_specialty_label(especialidades, code)
    if not label:
        label = specialty_label(especialidades[0])
    return label or None


def _resolve_floor(
    consultorio: ConsultorioNormalizado | None,
    building: str,
    floors_by_building: Mapping[str, Mapping[str, str]],
) -> str:
    """Catálogo de pisos del edificio, des_piso del consultorio, campo crudo o 'Piso {código}'."""
    if consultorio is None:
        return ""

    floor_code = consultorio.piso
    if floor_code is None:
        floor_code = pick(consultorio.raw, CONSULTORIO_FIELDS["raw_piso"])

    if building and floor_code is not None:
        from_catalog = floors_by_building.get(building, {}).get(as_text(floor_code))
        if from_catalog:
            return from_catalog

    if consultorio.des_piso:
        return consultorio.des_piso

    raw_description = pick(consultorio.raw, CONSULTORIO_FIELDS["raw_des_piso"])
    if raw_description:
        return as_text(raw_description)

    if floor_code is not None:
        return f"Piso {as_text(floor_code)}"
    return ""


async def _load_floors(
    api: HospitalApi,
    building_codes: Iterable[str],
    cancel_event: asyncio.Event | None,
) -> dict[str, dict[str, str]]:
    """Pisos por edificio, en paralelo. Edificios sin catálogo se omiten."""
    codes = list(building_codes)
    responses = await asyncio.gather(
        *(api.get_pisos_edificio(code, cancel_event=cancel_event) for code in codes)
    )

    floors: dict[str, dict[str, str]] = {}
    for code, response in zip(codes, responses):
        if not response.success:
            continue
        floor_map = create_floor_map(extract_list(response.data))
        if floor_map:
            floors[code] = floor_map
    return floors


async def get_agendas_detalladas_por_medico(
    api: HospitalApi,
    codigo_prestador: str | int,
    especialidad_id: SpecialtyFilter = None,
    *,
    cancel_event: asyncio.Event | None = None,
) -> ApiResponse:
    """
    Agendas detalladas de un prestador, opcionalmente filtradas por una o
    varias especialidades.

    `success` es el AND de las cinco consultas iniciales y `message` el de
    la primera que falló; una falla parcial no aborta las demás.
    """
    provider = as_text(codigo_prestador)

    agendas_res, medicos_res, consultorios_res, edificios_res, dias_res = await asyncio.gather(
        api.get_agendas_por_medico(provider, cancel_event=cancel_event),
        api.get_doctores(cancel_event=cancel_event),
        api.get_consultorios(cancel_event=cancel_event),
        api.get_edificios(cancel_event=cancel_event),
        api.get_dias(cancel_event=cancel_event),
    )
    responses = [agendas_res, medicos_res, consultorios_res, edificios_res, dias_res]

    agendas = [a for a in extract_list(agendas_res.data) if isinstance(a, Mapping)]
    if not agendas:
        retry = await api.get_agendas_por_medico(provider, cancel_event=cancel_event, use_cache=False)
        agendas = [a for a in extract_list(retry.data) if isinstance(a, Mapping)]

    consultorios_raw = [c for c in extract_list(consultorios_res.data) if isinstance(c, Mapping)]
    consultorios: dict[str, ConsultorioNormalizado] = {}
    for raw in consultorios_raw:
        consultorio = ConsultorioNormalizado(**normalize_consultorio(raw))
        if consultorio.codigo_consultorio:
            consultorios[consultorio.codigo_consultorio] = consultorio

    buildings = create_building_map(extract_list(edificios_res.data))
    day_names = create_day_name_map(extract_list(dias_res.data))
    doctors = create_doctor_map(extract_list(medicos_res.data))

    unique_buildings = dict.fromkeys(
        code for code in (consultorio_building_code(raw) for raw in consultorios_raw) if code
    )
    floors_by_building = await _load_floors(api, unique_buildings, cancel_event)

    wanted = _wanted_specialty_ids(especialidad_id)
    if wanted is not None:
        agendas = _filter_by_specialty(agendas, wanted)

    detalladas: list[AgendaDetallada] = []
    dropped = 0
    for agenda in agendas:
        prestador = pick_text(agenda, AGENDA_FIELDS["prestador"])
        if prestador != provider:
            dropped += 1
            continue

        codigo_consultorio = pick_text(agenda, AGENDA_FIELDS["consultorio"])
        consultorio = consultorios.get(codigo_consultorio)

        building = (consultorio.codigo_edificio or "") if consultorio else ""
        edificio = buildings.get(building) if building else None
        edificio_descripcion = building_description(edificio) if edificio else ""

        floor = _resolve_floor(consultorio, building, floors_by_building)

        medico = doctors.get(prestador)
        consultorio_descripcion = ""
        if consultorio is not None:
            consultorio_descripcion = consultorio.descripcion_consultorio or as_text(
                consultorio.raw.get("DES_CONSULTORIO") or ""
            )

        detalladas.append(AgendaDetallada(
            codigo_item_agendamiento=pick(agenda, AGENDA_FIELDS["item_agendamiento"]),
            codigo_prestador=agenda.get("codigo_prestador"),
            codigo_dia=agenda.get("codigo_dia"),
            hora_inicio=agenda.get("hora_inicio"),
            hora_fin=agenda.get("hora_fin"),
            tipo=as_text(agenda.get("tipo")) if agenda.get("tipo") is not None else None,
            codigo_consultorio=agenda.get("codigo_consultorio") or codigo_consultorio,
            especialidad=_specialty_for_agenda(medico, agenda, wanted),
            medico=pick_text(medico, DOCTOR_NAME_FIELDS),
            dia_nombre=decode_dia_nombre(pick(agenda, AGENDA_FIELDS["dia"]), day_names),
            hora_inicio_hhmm=to_hhmm(pick(agenda, AGENDA_FIELDS["hora_inicio"])),
            hora_fin_hhmm=to_hhmm(pick(agenda, AGENDA_FIELDS["hora_fin"])),
            consultorio_descripcion=consultorio_descripcion,
            consultorio_codigo=consultorio.codigo_consultorio if consultorio else None,
            edificio_descripcion=edificio_descripcion,
            tipo_texto=decode_tipo(agenda.get("tipo")),
            piso=floor,
            piso_descripcion=floor,
            building_code=building,
        ))

    if dropped:
        logger.debug("Descartadas %d agendas de otro prestador (solicitado=%s)", dropped, provider)

    failed = next((r for r in responses if not r.success), None)
    if failed is not None:
        logger.warning("Agendas de %s con datos parciales: %s", provider, failed.message)

    return ApiResponse(
        data=detalladas,
        success=failed is None,
        message=failed.message if failed else None,
    )
