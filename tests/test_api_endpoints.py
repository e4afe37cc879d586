"""Tests de los endpoints HTTP de la API v1."""

import asyncio
from types import SimpleNamespace

from app.api.deps import get_cancel_event
from app.main import app
from tests.fakes import MEDICOS

API = "/api/v1"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_list_specialties(client):
    response = await client.get(f"{API}/specialties", params={"q": "card"})

    assert response.status_code == 200
    body = response.json()
    assert [s["descripcion"] for s in body] == ["Cardiología"]
    assert body[0]["slug"] == "cardiologia"


async def test_specialties_upstream_error_is_502(client, backend):
    backend.routes["/especialidades/agenda"] = (500, {"message": "boom"})
    response = await client.get(f"{API}/specialties")
    assert response.status_code == 502


async def test_specialty_doctors(client):
    response = await client.get(f"{API}/specialties/cardiologia/doctors")

    assert response.status_code == 200
    body = response.json()
    assert body["specialty_name"] == "Cardiología"
    assert [d["name"] for d in body["doctors"]] == ["Ana Pérez", "Luis Gómez"]


async def test_unknown_specialty_is_404(client):
    response = await client.get(f"{API}/specialties/dermatologia/doctors")
    assert response.status_code == 404
    assert response.json()["detail"] == "Especialidad no encontrada"


async def test_doctor_schedule(client):
    response = await client.get(
        f"{API}/specialties/cardiologia/doctors/ana-perez/schedule", params={"source": "specialty"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["doctor"]["name"] == "Ana Pérez"
    assert body["available_days"] == ["monday"]
    assert body["schedules"]["monday"][0]["time"] == "8:30 AM - 12:30 PM"
    assert body["day_names"]["monday"] == "Lunes"
    assert body["complete"] is True


async def test_unknown_doctor_is_404(client):
    response = await client.get(f"{API}/specialties/cardiologia/doctors/nadie/schedule")
    assert response.status_code == 404
    assert response.json()["detail"] == "Médico no encontrado"


async def test_search_doctors(client):
    response = await client.get(f"{API}/doctors", params={"q": "gomez"})

    assert response.status_code == 200
    body = response.json()
    assert [d["name"] for d in body["doctors"]] == ["Luis Gómez"]
    assert body["total"] == 1


async def test_doctor_list_first_page(client):
    response = await client.get(f"{API}/doctors")

    body = response.json()
    assert body["total"] == len(MEDICOS)
    assert body["page"] == 0
    assert body["total_pages"] == 1


async def test_negative_page_is_rejected(client):
    response = await client.get(f"{API}/doctors", params={"page": -1})
    assert response.status_code == 422


async def test_refresh_doctors(client, backend):
    await client.get(f"{API}/doctors")
    response = await client.post(f"{API}/doctors/refresh")

    assert response.status_code == 200
    assert response.json()["is_from_cache"] is False
    assert backend.count("/medico/agenda") == 2


async def test_doctor_agendas(client):
    response = await client.get(f"{API}/doctors/123/agendas")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]) == 2
    assert {a["codigo_prestador"] for a in body["data"]} == {"123"}


async def test_doctor_agendas_with_specialty_filter(client):
    response = await client.get(f"{API}/doctors/123/agendas", params={"especialidad": ["7"]})

    body = response.json()
    assert [a["especialidad"] for a in body["data"]] == ["Medicina Interna"]


async def test_doctor_agendas_partial_failure(client, backend):
    backend.routes["/catalogos/dias"] = (500, {"message": "Días no disponibles"})

    response = await client.get(f"{API}/doctors/123/agendas")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Días no disponibles"
    assert len(body["data"]) == 2


async def test_agenda_board(client):
    response = await client.get(f"{API}/agendas", params={"edificio": "1"})

    assert response.status_code == 200
    body = response.json()
    assert body["edificio"] == "1"
    assert body["pisos"][0]["descripcion_piso"] == "Segundo piso"


async def test_building_display_name(client):
    response = await client.get(f"{API}/buildings/2/display-name")
    assert response.json() == {"code": "2", "display_name": "Torre Bless"}

    response = await client.get(f"{API}/buildings/B7/display-name")
    assert response.json()["display_name"] == "B7"


# ── Cliente desconectado ─────────────────────────────

async def _disconnected_client() -> asyncio.Event:
    cancel_event = asyncio.Event()
    cancel_event.set()
    return cancel_event


class FakeRequest:
    def __init__(self, disconnected: bool):
        self.disconnected = disconnected
        self.url = SimpleNamespace(path="/api/v1/doctors/123/agendas")

    async def is_disconnected(self) -> bool:
        return self.disconnected


async def test_schedule_for_disconnected_client_is_dropped(client, backend):
    app.dependency_overrides[get_cancel_event] = _disconnected_client

    response = await client.get(f"{API}/specialties/cardiologia/doctors/ana-perez/schedule")

    assert response.status_code == 499
    assert backend.calls == []


async def test_agendas_for_disconnected_client_are_dropped(client, backend):
    app.dependency_overrides[get_cancel_event] = _disconnected_client

    response = await client.get(f"{API}/doctors/123/agendas")

    assert response.status_code == 499
    assert backend.calls == []


async def test_cancel_event_follows_client_disconnect():
    dependency = get_cancel_event(FakeRequest(disconnected=True))
    cancel_event = await anext(dependency)

    await asyncio.wait_for(cancel_event.wait(), timeout=1)
    await dependency.aclose()


async def test_cancel_event_stays_clear_while_connected():
    dependency = get_cancel_event(FakeRequest(disconnected=False))
    cancel_event = await anext(dependency)

    await asyncio.sleep(0.05)

    assert not cancel_event.is_set()
    await dependency.aclose()
