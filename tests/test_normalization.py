"""Tests de las funciones puras de normalización."""

import re

import pytest

from app.services.normalization import (
    as_text,
    create_doctor_map,
    create_floor_map,
    decode_dia_nombre,
    decode_tipo,
    enrich_agendas_with_consultorio_data,
    extract_hhmm,
    extract_list,
    filter_agendas_by_location,
    format_hhmm_12h,
    get_building_display_name,
    is_consulta,
    is_procedure,
    normalize_agenda,
    normalize_consultorio,
    normalize_day_key,
    normalize_specialties,
    pick,
    slugify,
    to_hhmm,
)


class TestFieldAccess:
    def test_pick_uses_first_non_null_alias(self):
        record = {"nombres": None, "nombre": "Ana"}
        assert pick(record, ("nombres", "nombre")) == "Ana"

    def test_pick_keeps_falsy_values(self):
        assert pick({"piso": 0, "CD_PISO": 3}, ("piso", "CD_PISO")) == 0

    def test_pick_on_non_mapping(self):
        assert pick(None, ("a",)) is None
        assert pick(["a"], ("a",)) is None

    def test_as_text(self):
        assert as_text(None) == ""
        assert as_text(5) == "5"
        assert as_text(5.0) == "5"
        assert as_text(True) == "true"

    def test_extract_list(self):
        assert extract_list([1, 2]) == [1, 2]
        assert extract_list({"data": [1]}) == [1]
        assert extract_list({"data": "x"}) == []
        assert extract_list(None) == []


class TestTimes:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("830", "08:30"),
            ("0830", "08:30"),
            (830, "08:30"),
            ("08:30", "08:30"),
            ("13:30:00", "13:30"),
            ("", ""),
            (None, ""),
            ("mañana", "mañana"),
        ],
    )
    def test_to_hhmm(self, value, expected):
        assert to_hhmm(value) == expected

    def test_extract_hhmm_from_iso_datetime(self):
        assert extract_hhmm("2024-05-06T09:15:00Z") == "09:15"
        assert extract_hhmm("2024-05-06 17:45") == "17:45"

    def test_extract_hhmm_without_time(self):
        assert extract_hhmm("sin hora") == ""

    @pytest.mark.parametrize(
        "hhmm, expected",
        [("00:05", "12:05 AM"), ("08:30", "8:30 AM"), ("12:00", "12:00 PM"), ("13:30", "1:30 PM")],
    )
    def test_format_hhmm_12h(self, hhmm, expected):
        assert format_hhmm_12h(hhmm) == expected

    def test_format_hhmm_12h_passthrough(self):
        assert format_hhmm_12h("") == ""
        assert format_hhmm_12h("tarde") == "tarde"


class TestDays:
    @pytest.mark.parametrize(
        "code, expected",
        [("1", "Lunes"), ("7", "Domingo"), ("X", "Miércoles"), ("s", "Sábado"), ("MARTES", "Martes")],
    )
    def test_decode_without_catalog(self, code, expected):
        assert decode_dia_nombre(code) == expected

    def test_catalog_wins(self):
        assert decode_dia_nombre("1", {"1": "Lunes (turno mañana)"}) == "Lunes (turno mañana)"

    def test_unknown_and_empty(self):
        assert decode_dia_nombre("Q") == "Q"
        assert decode_dia_nombre(None) == ""

    def test_normalize_day_key(self):
        assert normalize_day_key("Miércoles") == "wednesday"
        assert normalize_day_key("Sabado") == "saturday"
        assert normalize_day_key("friday") == "friday"


class TestTipo:
    def test_decode_tipo(self):
        assert decode_tipo("c") == "Consulta"
        assert decode_tipo("P") == "Procedimiento"
        assert decode_tipo("qx") == "QX"
        assert decode_tipo(None) == ""

    @pytest.mark.parametrize("tipo", ["Procedimiento", "QX", "Quirófano", "Cirugía menor"])
    def test_procedures(self, tipo):
        assert is_procedure(tipo)
        assert not is_consulta(tipo)

    @pytest.mark.parametrize("tipo", ["Consulta", "", None, "Control"])
    def test_consultas(self, tipo):
        assert is_consulta(tipo)
        assert not is_procedure(tipo)


class TestSlugsAndBuildings:
    def test_slugify(self):
        assert slugify("Cardiología Pediátrica") == "cardiologia-pediatrica"
        assert slugify("  Óscar  Núñez ") == "oscar-nunez"
        assert slugify(None) == ""

    @pytest.mark.parametrize("text", ["", "---", "Ñandú  Ópera!!", "ya-es-slug", "Cirugía 2 (QX)"])
    def test_slugify_is_idempotent_and_clean(self, text):
        slug = slugify(text)
        assert re.fullmatch(r"[a-z0-9]+(?:-[a-z0-9]+)*|", slug)
        assert slugify(slug) == slug

    @pytest.mark.parametrize(
        "code, expected",
        [
            ("1", "Principal"), (2, "Torre Bless"), ("B3", "B3"), ("9", "9"),
            (None, "No especificado"), ("", "No especificado"), (0, "No especificado"),
        ],
    )
    def test_building_display_name(self, code, expected):
        assert get_building_display_name(code) == expected


class TestSpecialtiesAndDoctors:
    def test_normalize_specialties_mixed(self):
        result = normalize_specialties([
            {"especialidadId": 5, "descripcion": "Cardiología"},
            {"id": "7", "nombre": "Pediatría"},
            "9",
            {"descripcion": "Sin id"},
        ])
        assert result == [
            {"id": "5", "label": "Cardiología"},
            {"id": "7", "label": "Pediatría"},
            {"id": "9", "label": "9"},
        ]

    def test_normalize_specialties_non_list(self):
        assert normalize_specialties(None) == []

    def test_doctor_map_indexes_every_alias(self):
        doctor = {"id": 10, "codigoPrestador": "123"}
        by_id = create_doctor_map([doctor])
        assert by_id["10"] is doctor
        assert by_id["123"] is doctor

    def test_doctor_map_first_writer_wins(self):
        first = {"id": 1, "codigo_prestador": "55"}
        second = {"id": 55}
        by_id = create_doctor_map([first, second])
        assert by_id["55"] is first


class TestConsultorios:
    def test_normalize_consultorio_aliases(self):
        result = normalize_consultorio({
            "CD_CONSULTORIO": "C9",
            "CD_EDIFICIO": 2,
            "CD_PISO": 3,
            "DESCRIPCION_PISO": "Tercer piso",
            "DES_CONSULTORIO": "Consultorio 309",
        })
        assert result["codigo_consultorio"] == "C9"
        assert result["codigo_edificio"] == "2"
        assert result["piso"] == 3
        assert result["des_piso"] == "Tercer piso"
        assert result["descripcion_consultorio"] == "Consultorio 309"

    def test_floor_map(self):
        assert create_floor_map([{"codigo_piso": "1", "descripcion_piso": "Primer piso"}, {"nombre": "x"}]) == {
            "1": "Primer piso"
        }


class TestAgendaBoard:
    def test_normalize_agenda_alias_precedence(self):
        agenda = normalize_agenda({"codigo_agenda": 3, "codigo_consultorio": "C1", "dia": 2, "hora_inicio": "08:00"})
        assert agenda["id"] == 3
        assert agenda["consultorioCodigo"] == "C1"
        assert agenda["diaCodigo"] == "2"
        assert agenda["horaInicio"] == "08:00"

    def test_enrich_and_filter(self):
        agendas = [normalize_agenda({"id": 1, "consultorio": "C1", "dia": "1"}),
                   normalize_agenda({"id": 2, "consultorio": "C2", "dia": "2"})]
        consultorios = {"C1": {"nombre": "Consultorio 101", "edificio": "1", "piso": "2"}}
        enriched = enrich_agendas_with_consultorio_data(agendas, consultorios, {"1": "Lunes"})

        assert enriched[0]["consultorioNombre"] == "Consultorio 101"
        assert enriched[0]["diaNombre"] == "Lunes"
        assert enriched[1]["edificio"] == ""

        assert [a["id"] for a in filter_agendas_by_location(enriched, "1", "2")] == [1]
        assert [a["id"] for a in filter_agendas_by_location(enriched, "1", "9")] == []
        assert len(filter_agendas_by_location(enriched)) == 2
