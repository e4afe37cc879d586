"""
Fixtures compartidas para Pytest.
Provee gateway, API y cliente HTTP de test contra el backend simulado.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.core.cache import TTLCache
from app.main import app
from app.services.api_gateway import ApiGateway
from app.services.doctors_cache import DoctorsCache, MemoryStorage
from app.services.hospital_api import HospitalApi
from tests.fakes import FakeBackend, make_settings


# ── Fixtures ─────────────────────────────────────────

@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def gateway(settings: Settings, backend: FakeBackend) -> AsyncGenerator[ApiGateway, None]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    gw = ApiGateway(settings, client=http_client)
    yield gw
    await http_client.aclose()


@pytest.fixture
def api(gateway: ApiGateway) -> HospitalApi:
    return HospitalApi(gateway)


@pytest.fixture
def specialties_cache(settings: Settings) -> TTLCache:
    return TTLCache(settings.SPECIALTIES_CACHE_TTL_SECONDS)


@pytest.fixture
def doctors_cache(api: HospitalApi, settings: Settings) -> DoctorsCache:
    return DoctorsCache(api, MemoryStorage(), settings)


@pytest_asyncio.fixture
async def client(
    api: HospitalApi, doctors_cache: DoctorsCache, specialties_cache: TTLCache
) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test con la app apuntando al backend simulado."""
    app.state.hospital_api = api
    app.state.doctors_cache = doctors_cache
    app.state.specialties_cache = specialties_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
