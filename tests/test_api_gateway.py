"""Tests del gateway HTTP: cache, timeout, cancelación y errores."""

import asyncio

import httpx

from app.services.api_gateway import ApiGateway
from tests.fakes import FakeBackend, make_settings, slow_response


def _gateway(backend: FakeBackend, **settings_overrides) -> ApiGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    return ApiGateway(make_settings(**settings_overrides), client=client)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def test_get_is_cached(gateway, backend):
    first = await gateway.request("/catalogos/dias")
    second = await gateway.request("/catalogos/dias")

    assert first.success and second.success
    assert second.data is first.data
    assert backend.count("/catalogos/dias") == 1


async def test_use_cache_false_bypasses_cache(gateway, backend):
    await gateway.request("/catalogos/dias")
    await gateway.request("/catalogos/dias", use_cache=False)
    assert backend.count("/catalogos/dias") == 2


async def test_cache_expires_after_ttl(backend):
    clock = FakeClock()
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    gw = ApiGateway(make_settings(API_CACHE_TTL_SECONDS=30), client=client, clock=clock)

    await gw.request("/catalogos/dias")
    clock.now += 29
    await gw.request("/catalogos/dias")
    assert backend.count("/catalogos/dias") == 1

    clock.now += 1
    await gw.request("/catalogos/dias")
    assert backend.count("/catalogos/dias") == 2
    await client.aclose()


async def test_query_string_is_part_of_cache_key(gateway, backend):
    await gateway.request("/agnd-agenda?codigo_prestador=123")
    await gateway.request("/agnd-agenda?codigo_prestador=456")
    assert backend.count("/agnd-agenda?codigo_prestador=123") == 1
    assert backend.count("/agnd-agenda?codigo_prestador=456") == 1


async def test_post_is_not_cached(gateway, backend):
    backend.routes["/medico/agenda"] = lambda request: httpx.Response(201, json={"ok": True})
    await gateway.request("/medico/agenda", method="POST", data={"nombres": "Ana"})
    await gateway.request("/medico/agenda", method="POST", data={"nombres": "Ana"})
    assert backend.count("/medico/agenda") == 2


async def test_timeout():
    backend = FakeBackend({"/catalogos/dias": slow_response([], delay=1.0)})
    gw = _gateway(backend, API_TIMEOUT_SECONDS=0.05)

    result = await gw.request("/catalogos/dias")

    assert not result.success
    assert result.data is None
    assert result.message == "Request timeout"
    await gw.aclose()


async def test_external_cancellation():
    backend = FakeBackend({"/catalogos/dias": slow_response([], delay=1.0)})
    gw = _gateway(backend)
    cancel = asyncio.Event()

    task = asyncio.create_task(gw.request("/catalogos/dias", cancel_event=cancel))
    await asyncio.sleep(0.01)
    cancel.set()
    result = await task

    assert not result.success
    assert result.message == "Request cancelled"


async def test_already_cancelled_token_does_not_hit_backend(gateway, backend):
    cancel = asyncio.Event()
    cancel.set()

    result = await gateway.request("/catalogos/dias", cancel_event=cancel)

    assert result.message == "Request cancelled"
    assert backend.count("/catalogos/dias") == 0


async def test_error_message_from_json_body(gateway, backend):
    backend.routes["/catalogos/dias"] = (500, {"message": "Base de datos caída"})
    result = await gateway.request("/catalogos/dias")
    assert not result.success
    assert result.message == "Base de datos caída"


async def test_error_message_from_text_body(gateway, backend):
    backend.routes["/catalogos/dias"] = lambda request: httpx.Response(503, text="Servicio no disponible")
    result = await gateway.request("/catalogos/dias")
    assert result.message == "Servicio no disponible"


async def test_error_message_falls_back_to_status(gateway, backend):
    backend.routes["/catalogos/dias"] = (500, {"error": True})
    result = await gateway.request("/catalogos/dias")
    assert result.message == "HTTP error 500"


async def test_failed_responses_are_not_cached(gateway, backend):
    backend.routes["/catalogos/dias"] = (500, {"message": "boom"})
    await gateway.request("/catalogos/dias")
    backend.routes["/catalogos/dias"] = [{"codigo": "1", "nombre": "Lunes"}]

    result = await gateway.request("/catalogos/dias")

    assert result.success
    assert backend.count("/catalogos/dias") == 2


async def test_network_error_never_raises(gateway, backend):
    def fail(request):
        raise httpx.ConnectError("Connection refused", request=request)

    backend.routes["/catalogos/dias"] = fail
    result = await gateway.request("/catalogos/dias")

    assert not result.success
    assert result.message == "Connection refused"


async def test_non_json_body_is_returned_as_text(gateway, backend):
    backend.routes["/catalogos/dias"] = lambda request: httpx.Response(200, text="OK")
    result = await gateway.request("/catalogos/dias")
    assert result.success
    assert result.data == "OK"


async def test_default_headers_are_sent(gateway, backend):
    seen = {}

    def capture(request):
        seen.update(request.headers)
        return httpx.Response(200, json=[])

    backend.routes["/catalogos/dias"] = capture
    await gateway.request("/catalogos/dias", headers={"X-Kiosk": "hall"})

    assert seen["accept"] == "application/json"
    assert seen["x-kiosk"] == "hall"
    assert "authorization" not in seen
