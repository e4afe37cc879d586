"""
Normalización de datos del backend de agendamiento.

El backend cambió nombres de campos entre versiones (consultorio, día,
tipo, edificio...). Cada entidad tiene UNA tabla de alias (`*_FIELDS`) y
todas las lecturas pasan por `pick`/`pick_text`. Las funciones de este
módulo son puras y totales: no lanzan excepciones con entradas arbitrarias.
"""

import re
import unicodedata
from collections.abc import Iterable, Mapping
from typing import Any

# ── Constantes ───────────────────────────────────────

DAYS_OF_WEEK = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DAY_NAMES = {
    "monday": "Lunes",
    "tuesday": "Martes",
    "wednesday": "Miércoles",
    "thursday": "Jueves",
    "friday": "Viernes",
    "saturday": "Sábado",
    "sunday": "Domingo",
}

_DAY_KEYS_ES = {
    "lunes": "monday",
    "martes": "tuesday",
    "miércoles": "wednesday",
    "miercoles": "wednesday",
    "jueves": "thursday",
    "viernes": "friday",
    "sábado": "saturday",
    "sabado": "saturday",
    "domingo": "sunday",
}

_DAY_BY_NUMBER = {str(n): DAY_NAMES[key] for n, key in enumerate(DAYS_OF_WEEK, start=1)}
_DAY_BY_LETTER = {"L": "Lunes", "M": "Martes", "X": "Miércoles", "J": "Jueves",
                  "V": "Viernes", "S": "Sábado", "D": "Domingo"}
_DAY_BY_FULL_NAME = {
    "LUNES": "Lunes", "MARTES": "Martes", "MIERCOLES": "Miércoles", "MIÉRCOLES": "Miércoles",
    "JUEVES": "Jueves", "VIERNES": "Viernes", "SABADO": "Sábado", "SÁBADO": "Sábado",
    "DOMINGO": "Domingo",
}

TIME_HHMM = re.compile(r"^(\d{2}):(\d{2})$")
TIME_HHMMSS = re.compile(r"^(\d{2}):(\d{2}):(\d{2})$")
TIME_NUMERIC = re.compile(r"^\d{3,4}$")
NUMERIC_ID = re.compile(r"^\d+$")
DATE_ISO = re.compile(r"\b\d{4}-\d{2}-\d{2}[ T](\d{2}:\d{2})\b")
DATE_ISO_FULL = re.compile(r"\b\d{4}-\d{2}-\d{2}T(\d{2}:\d{2})(?::\d{2})?(?:Z|[+-]\d{2}:?\d{2})?\b")

_PROCEDURE_PATTERN = re.compile(r"(proced|qx|quir|cirug)")

BUILDING_NAMES = {"1": "Principal", "2": "Torre Bless"}

# ── Tablas de alias por entidad ──────────────────────

DOCTOR_ID_FIELDS = (
    "id", "codigo", "codigoPrestador", "codigo_prestador", "cd_prestador", "prestadorId", "medicoId",
)
DOCTOR_NAME_FIELDS = ("nombres", "nombre")
DOCTOR_PHOTO_FIELDS = ("retrato", "foto")

SPECIALTY_FIELDS = {
    "id": ("especialidadId", "id", "codigo"),
    "label": ("descripcion", "nombre"),
}

AGENDA_FIELDS = {
    "prestador": ("codigo_prestador", "codigoPrestador", "cd_prestador", "prestadorId", "medicoId"),
    "item_agendamiento": ("codigo_item_agendamiento", "id", "codigo"),
    "consultorio": ("codigo_consultorio", "consultorio", "consultorioCodigo"),
    "dia": ("codigo_dia", "dia", "diaCodigo"),
    "hora_inicio": ("hora_inicio", "horaInicio", "hora"),
    "hora_fin": ("hora_fin", "horaFin", "horarioFin"),
}

# Tablero de agendas: la lista general usa otra precedencia de alias
AGENDA_BOARD_FIELDS = {
    "id": ("id", "codigo_agenda", "codigo"),
    "consultorio": ("consultorio", "consultorioCodigo", "consultorio_id", "codigo_consultorio"),
    "dia": ("dia", "diaCodigo", "dia_id", "codigo_dia"),
    "hora_inicio": ("hora", "horario", "horaInicio", "hora_inicio"),
    "hora_fin": ("horaFin", "horarioFin", "hora_fin"),
    "tipo": ("tipo", "type"),
}

CONSULTORIO_FIELDS = {
    "codigo": ("codigo", "id", "codigo_consultorio", "CD_CONSULTORIO", "consultorio_id"),
    "edificio": ("codigo_edificio", "edificio", "CD_EDIFICIO", "codigoEdificio", "edificio_id", "edificioId"),
    "piso": ("piso", "CD_PISO", "codigoPiso", "piso_id", "pisoId"),
    "des_piso": ("des_piso", "DES_PISO", "descripcion_piso", "DESCRIPCION_PISO", "descripcionPiso",
                 "piso_descripcion"),
    "descripcion": ("des_consultorio", "DES_CONSULTORIO", "descripcion_consultorio", "DESCRIPCION_CONSULTORIO",
                    "descripcion", "nombre", "consultorio", "consultorio_nombre"),
    "raw_piso": ("CD_PISO", "codigo_piso"),
    "raw_des_piso": ("DES_PISO", "descripcion_piso"),
}

EDIFICIO_FIELDS = {
    "codigo": ("codigo", "id", "codigoEdificio", "CD_EDIFICIO", "edificio_id"),
    "descripcion": ("descripcion_edificio", "descripcion", "nombre", "DES_EDIFICIO", "edificioNombre",
                    "nombre_edificio"),
}

PISO_FIELDS = {
    "codigo": ("codigo_piso", "codigo", "id"),
    "descripcion": ("descripcion_piso", "descripcion", "nombre", "descripcionPiso"),
}

DIA_FIELDS = {
    "codigo": ("codigo", "id"),
    "nombre": ("nombre", "descripcion", "name"),
}


# ── Lectura de campos ────────────────────────────────

def as_text(value: Any) -> str:
    """Convierte un valor del backend a texto; None → ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def pick(record: Any, aliases: Iterable[str]) -> Any:
    """Primer alias presente y distinto de None (semántica de `??`)."""
    if not isinstance(record, Mapping):
        return None
    for alias in aliases:
        value = record.get(alias)
        if value is not None:
            return value
    return None


def pick_text(record: Any, aliases: Iterable[str]) -> str:
    return as_text(pick(record, aliases))


def extract_list(payload: Any) -> list:
    """El backend responde con un array o con {data: array}."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


# ── Texto ────────────────────────────────────────────

def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(text: Any) -> str:
    """Minúsculas, sin acentos, solo [a-z0-9-] y sin guiones en los extremos."""
    value = strip_accents(as_text(text)).lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def normalize_day_key(name_or_key: Any) -> str:
    """'Miércoles' → 'wednesday'. Claves desconocidas pasan en minúsculas."""
    key = as_text(name_or_key).lower()
    return _DAY_KEYS_ES.get(key, key)


def is_procedure(tipo: Any) -> bool:
    return bool(_PROCEDURE_PATTERN.search(as_text(tipo).lower()))


def is_consulta(tipo: Any) -> bool:
    return not is_procedure(tipo)


def decode_tipo(tipo: Any) -> str:
    value = as_text(tipo).upper()
    if value == "C":
        return "Consulta"
    if value == "P":
        return "Procedimiento"
    return value


def get_building_display_name(building_code: Any) -> str:
    if building_code is None or building_code == "" or building_code == 0:
        return "No especificado"
    code = as_text(building_code).strip()
    return BUILDING_NAMES.get(code, code)


def decode_dia_nombre(codigo_dia: Any, catalog: Mapping[str, str] | None = None) -> str:
    """Nombre del día: catálogo, luego 1-7, letras L..D y nombres en español."""
    code = as_text(codigo_dia).strip()
    if not code:
        return ""

    if catalog and catalog.get(code):
        return catalog[code]

    upper = code.upper()
    for table in (_DAY_BY_NUMBER, _DAY_BY_LETTER, _DAY_BY_FULL_NAME):
        if upper in table:
            return table[upper]
    return code


# ── Horas ────────────────────────────────────────────

def to_hhmm(value: Any) -> str:
    """'830' → '08:30', '13:30:00' → '13:30'; otros formatos pasan sin cambio."""
    text = as_text(value).strip()
    if not text:
        return ""
    if TIME_HHMM.match(text):
        return text
    if TIME_HHMMSS.match(text):
        return text[:5]
    if TIME_NUMERIC.match(text):
        padded = text.zfill(4)
        return f"{padded[:2]}:{padded[2:]}"
    return text


def extract_hhmm(value: Any) -> str:
    """Extrae HH:mm de horas sueltas o de fechas ISO; '' si no hay hora."""
    text = as_text(value).strip()
    if not text:
        return ""
    if TIME_HHMM.match(text) or TIME_HHMMSS.match(text) or TIME_NUMERIC.match(text):
        return to_hhmm(text)
    match = DATE_ISO_FULL.search(text) or DATE_ISO.search(text)
    if match:
        return match.group(1)
    return ""


def format_hhmm_12h(hhmm: str) -> str:
    """'13:30' → '1:30 PM'. Entradas que no son HH:mm se devuelven igual."""
    match = TIME_HHMM.match(hhmm or "")
    if not match:
        return hhmm or ""
    hours, minutes = int(match.group(1)), match.group(2)
    suffix = "AM" if hours < 12 else "PM"
    hours = hours % 12 or 12
    return f"{hours}:{minutes} {suffix}"


# ── Especialidades ───────────────────────────────────

def specialty_id(especialidad: Any) -> str:
    if isinstance(especialidad, Mapping):
        return pick_text(especialidad, SPECIALTY_FIELDS["id"])
    return as_text(especialidad)


def specialty_label(especialidad: Any) -> str:
    if isinstance(especialidad, Mapping):
        return pick_text(especialidad, SPECIALTY_FIELDS["label"])
    return as_text(especialidad)


def normalize_specialties(especialidades: Any) -> list[dict[str, str]]:
    """Lista de especialidades (objetos o escalares) → [{id, label}]."""
    if not isinstance(especialidades, list):
        return []

    result = []
    for esp in especialidades:
        esp_id = specialty_id(esp)
        label = specialty_label(esp) or esp_id
        if esp_id.strip():
            result.append({"id": esp_id, "label": label})
    return result


# ── Médicos ──────────────────────────────────────────

def doctor_ids(doctor: Any) -> list[str]:
    """Todos los identificadores no vacíos bajo los que se conoce al médico."""
    return [key for key in (as_text(pick(doctor, (alias,))) for alias in DOCTOR_ID_FIELDS) if key]


def create_doctor_map(doctors: Iterable[Any]) -> dict[str, dict]:
    """Médico por cualquiera de sus alias; ante colisión gana el primero."""
    by_id: dict[str, dict] = {}
    for doctor in doctors:
        if not isinstance(doctor, Mapping):
            continue
        for key in doctor_ids(doctor):
            by_id.setdefault(key, doctor)
    return by_id


# ── Consultorios, edificios, pisos y días ────────────

def normalize_consultorio(raw: Mapping[str, Any]) -> dict[str, Any]:
    des_piso = pick(raw, CONSULTORIO_FIELDS["des_piso"])
    descripcion = pick(raw, CONSULTORIO_FIELDS["descripcion"])
    return {
        "codigo_consultorio": pick_text(raw, CONSULTORIO_FIELDS["codigo"]),
        "codigo_edificio": pick_text(raw, CONSULTORIO_FIELDS["edificio"]) or None,
        "piso": pick(raw, CONSULTORIO_FIELDS["piso"]),
        "des_piso": as_text(des_piso) if des_piso else None,
        "descripcion_consultorio": as_text(descripcion) if descripcion else None,
        "raw": dict(raw),
    }


def consultorio_building_code(consultorio_raw: Any) -> str:
    return pick_text(consultorio_raw, CONSULTORIO_FIELDS["edificio"])


def building_description(edificio: Any) -> str:
    return pick_text(edificio, EDIFICIO_FIELDS["descripcion"])


def create_building_map(edificios: Iterable[Any]) -> dict[str, dict]:
    by_code: dict[str, dict] = {}
    for edificio in edificios:
        code = pick_text(edificio, EDIFICIO_FIELDS["codigo"])
        if code:
            by_code[code] = edificio
    return by_code


def create_floor_map(pisos: Iterable[Any]) -> dict[str, str]:
    by_code: dict[str, str] = {}
    for piso in pisos:
        code = pick_text(piso, PISO_FIELDS["codigo"])
        if code:
            by_code[code] = pick_text(piso, PISO_FIELDS["descripcion"])
    return by_code


def create_day_name_map(dias: Iterable[Any]) -> dict[str, str]:
    """Nombre de día por código del catálogo."""
    by_code: dict[str, str] = {}
    for dia in dias:
        code = pick_text(dia, DIA_FIELDS["codigo"])
        if code:
            by_code[code] = pick_text(dia, DIA_FIELDS["nombre"])
    return by_code


# ── Tablero de agendas ───────────────────────────────

def normalize_agenda(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Estandariza una agenda de la lista general para el tablero."""
    consultorio = pick(raw, AGENDA_BOARD_FIELDS["consultorio"])
    dia = pick(raw, AGENDA_BOARD_FIELDS["dia"])
    hora_inicio = pick(raw, AGENDA_BOARD_FIELDS["hora_inicio"])
    return {
        **raw,
        "id": pick(raw, AGENDA_BOARD_FIELDS["id"]),
        "consultorio": consultorio,
        "consultorioCodigo": as_text(consultorio),
        "dia": dia,
        "diaCodigo": as_text(dia),
        "hora": hora_inicio,
        "horaInicio": hora_inicio,
        "horaFin": pick(raw, AGENDA_BOARD_FIELDS["hora_fin"]),
        "tipo": pick(raw, AGENDA_BOARD_FIELDS["tipo"]),
    }


def create_consultorio_map(consultorios: Iterable[Any]) -> dict[str, dict]:
    by_code: dict[str, dict] = {}
    for consultorio in consultorios:
        code = pick_text(consultorio, ("codigo", "id"))
        if code:
            by_code[code] = consultorio
    return by_code


def enrich_agendas_with_consultorio_data(
    agendas: Iterable[Mapping[str, Any]],
    consultorio_map: Mapping[str, Mapping[str, Any]],
    day_name_map: Mapping[str, str],
) -> list[dict[str, Any]]:
    """Agrega nombre de consultorio, edificio, piso y nombre del día."""
    enriched = []
    for agenda in agendas:
        code = pick_text(agenda, AGENDA_BOARD_FIELDS["consultorio"])
        consultorio = consultorio_map.get(code) or {}
        dia = pick_text(agenda, AGENDA_BOARD_FIELDS["dia"])
        enriched.append({
            **agenda,
            "consultorioCodigo": code,
            "consultorioNombre": as_text(pick(consultorio, ("nombre", "descripcion"))),
            "edificio": as_text(consultorio.get("edificio")),
            "piso": as_text(consultorio.get("piso")),
            "diaNombre": day_name_map.get(dia, ""),
        })
    return enriched


def filter_agendas_by_location(
    agendas: Iterable[Mapping[str, Any]],
    edificio: str = "",
    piso: str = "",
) -> list[dict[str, Any]]:
    result = []
    for agenda in agendas:
        if edificio and as_text(agenda.get("edificio")) != as_text(edificio):
            continue
        if piso and as_text(agenda.get("piso")) != as_text(piso):
            continue
        result.append(dict(agenda))
    return result
