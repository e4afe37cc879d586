"""
Gateway HTTP hacia el backend de agendamiento.

- Cache en memoria de GET (TTL corto) con clave METHOD:URL.
- Timeout por petición combinado con un token de cancelación externo
  (asyncio.Event): lo primero que ocurra aborta la llamada.
- Nunca lanza: errores HTTP, de red, de timeout o de autenticación se
  devuelven como ApiResponse(success=False, message=...).
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from app.auth.session import AuthSession
from app.config import Settings, get_settings
from app.core.cache import TTLCache
from app.core.exceptions import AuthenticationError
from app.schemas.agenda import ApiResponse

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_MISS = object()


class RequestAborted(Exception):
    """La petición fue abortada por timeout o por cancelación externa."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    """message del JSON de error, si no el texto crudo, si no el status."""
    message = None
    try:
        body = response.json()
        if isinstance(body, dict):
            message = body.get("message")
    except ValueError:
        message = response.text
    return message or f"HTTP error {response.status_code}"


class ApiGateway:
    """Cliente del backend con cache, timeout y cancelación cooperativa."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        auth: AuthSession | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.API_BASE_URL.rstrip("/")
        self.timeout = self.settings.API_TIMEOUT_SECONDS
        self.auth = auth
        self._client = client
        self._owns_client = client is None
        self._cache = TTLCache(self.settings.API_CACHE_TTL_SECONDS, clock=clock)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def _send(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> httpx.Response:
        """Ejecuta la petición compitiendo contra el timeout y la cancelación."""
        if cancel_event is not None and cancel_event.is_set():
            raise RequestAborted("Request cancelled")

        request_headers = {**DEFAULT_HEADERS, **(headers or {})}
        if self.auth is not None:
            token = await self.auth.get_access_token()
            request_headers["Authorization"] = f"Bearer {token}"

        send = asyncio.ensure_future(
            self._get_client().request(
                method,
                url,
                json=data,
                headers=request_headers,
                timeout=self.timeout,
            )
        )
        waiters: set[asyncio.Future] = {send}
        cancelled = None
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        if send not in done:
            if cancelled is not None and cancelled in done:
                raise RequestAborted("Request cancelled")
            raise RequestAborted("Request timeout")

        return send.result()

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        data: Any = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
        use_cache: bool = True,
    ) -> ApiResponse:
        """
        Realiza una petición al backend y normaliza el resultado.

        `endpoint` incluye el query string ya codificado; la clave de cache
        es METHOD:URL completa.
        """
        method = method.upper()
        url = f"{self.base_url}{endpoint}"
        is_get = method == "GET"
        cache_key = f"{method}:{url}"

        if is_get and use_cache:
            cached = self._cache.get(cache_key, _MISS)
            if cached is not _MISS:
                return ApiResponse(data=cached, success=True)

        try:
            response = await self._send(method, url, data=data, headers=headers, cancel_event=cancel_event)
        except RequestAborted as exc:
            return ApiResponse(data=None, success=False, message=exc.message)
        except httpx.TimeoutException:
            return ApiResponse(data=None, success=False, message="Request timeout")
        except AuthenticationError as exc:
            logger.error("Autenticación fallida contra el backend: %s", exc.message)
            return ApiResponse(data=None, success=False, message=exc.message)
        except httpx.HTTPError as exc:
            logger.warning("Error de conexión con %s: %s", url, exc)
            return ApiResponse(data=None, success=False, message=str(exc) or "Unknown error")

        if not response.is_success:
            if response.status_code == 401 and self.auth is not None:
                await self._refresh_session()
            message = _error_message(response)
            logger.warning("Backend respondió %s en %s: %s", response.status_code, endpoint, message)
            return ApiResponse(data=None, success=False, message=message)

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if is_get:
            self._cache.set(cache_key, payload)
        return ApiResponse(data=payload, success=True)

    async def _refresh_session(self) -> None:
        """Tras un 401 renueva los tokens para las próximas peticiones."""
        try:
            await self.auth.refresh_access_token()
        except AuthenticationError as exc:
            logger.error("No se pudo renovar la sesión: %s", exc.message)
            self.auth.clear_tokens()

    def clear_cache(self) -> None:
        self._cache.clear()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
