"""
Sesión de autenticación contra el servicio Auth del backend.

Guarda access/refresh token en memoria del proceso (nunca se persisten).
La validez del token es por presencia: no se decodifica ni se revisa la
expiración; cuando el backend responde 401 el gateway pide un refresh.
"""

import asyncio
import logging

import httpx

from app.config import Settings, get_settings
from app.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def _normalize_auth_error(error: Exception) -> dict:
    """Normaliza errores HTTP, de red o genéricos a {message, code?}."""
    if isinstance(error, httpx.HTTPStatusError):
        message = None
        try:
            body = error.response.json()
            if isinstance(body, dict):
                message = body.get("message")
        except ValueError:
            pass
        return {
            "message": message or str(error) or "Error de autenticación",
            "code": str(error.response.status_code),
        }

    if isinstance(error, httpx.HTTPError):
        return {"message": str(error) or "Error de autenticación"}

    if isinstance(error, Exception) and str(error):
        return {"message": str(error)}

    return {"message": "Error desconocido de autenticación"}


class AuthSession:
    """
    Tokens de acceso de una sesión contra el backend.

    Se inyecta en el gateway; cada instancia tiene su propio estado, lo que
    permite aislar tests o atender más de un tenant en el mismo proceso.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None
        self._login_lock = asyncio.Lock()
        self.access_token = ""
        self.refresh_token = ""

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.API_TIMEOUT_SECONDS)
        return self._client

    def _get_credentials(self) -> tuple[str, str]:
        username = self.settings.AUTH_USERNAME
        password = self.settings.AUTH_PASSWORD
        if not username or not password:
            raise AuthenticationError("Credenciales de autenticación no configuradas")
        return username, password

    async def _post_tokens(self, endpoint: str, form: dict, invalid_message: str) -> tuple[str, str]:
        """POST form-encoded al servicio Auth; retorna (access, refresh)."""
        url = f"{self.settings.AUTH_URL}/Auth/{endpoint}"
        try:
            response = await self._get_client().post(
                url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.settings.API_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
            access = payload.get("access_token") if isinstance(payload, dict) else None
            refresh = payload.get("refresh_token") if isinstance(payload, dict) else None
            if not access or not refresh:
                raise AuthenticationError(invalid_message)
        except AuthenticationError:
            raise
        except Exception as exc:
            auth_error = _normalize_auth_error(exc)
            raise AuthenticationError(auth_error["message"], auth_error.get("code")) from exc

        return access, refresh

    async def _login(self) -> tuple[str, str]:
        username, password = self._get_credentials()
        tokens = await self._post_tokens(
            "login",
            {"username": username, "password": password},
            "Respuesta de autenticación inválida",
        )
        logger.info("Login exitoso contra %s", self.settings.AUTH_URL)
        return tokens

    async def _refresh(self) -> tuple[str, str]:
        if not self.refresh_token:
            raise AuthenticationError("No hay token de refresh disponible")
        return await self._post_tokens(
            "refresh",
            {"refreshToken": self.refresh_token},
            "Respuesta de refresh inválida",
        )

    async def get_access_token(self) -> str:
        """Retorna el token en memoria; si no hay, hace login."""
        if not self.access_token:
            async with self._login_lock:
                # Otro llamador pudo completar el login mientras se esperaba el lock
                if not self.access_token:
                    self.access_token, self.refresh_token = await self._login()
        return self.access_token

    async def refresh_access_token(self) -> None:
        """Refresca los tokens; si el refresh falla, vuelve a hacer login."""
        stale_token = self.access_token
        async with self._login_lock:
            # Otro 401 concurrente ya renovó el token que se estaba usando
            if self.access_token and self.access_token != stale_token:
                return
            try:
                self.access_token, self.refresh_token = await self._refresh()
            except AuthenticationError as exc:
                logger.warning("Refresh de token fallido (%s), reintentando login", exc.message)
                self.access_token, self.refresh_token = await self._login()

    def clear_tokens(self) -> None:
        self.access_token = ""
        self.refresh_token = ""

    def has_valid_token(self) -> bool:
        return bool(self.access_token)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
