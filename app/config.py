"""
Configuración central de la aplicación.
Usa Pydantic BaseSettings para validar variables de entorno.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────
    APP_NAME: str = "Directorio Hospitalario"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # ── Server ───────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ─────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ── Backend de agendamiento ──────────────────────
    API_BASE_URL: str = "http://localhost:3001"
    API_TIMEOUT_SECONDS: float = 30.0
    API_CACHE_TTL_SECONDS: int = 30

    # ── Autenticación del backend ────────────────────
    AUTH_URL: str = "http://localhost:36560/api3/v1"
    AUTH_USERNAME: str = ""
    AUTH_PASSWORD: str = ""

    # ── Cachés del directorio ────────────────────────
    SPECIALTIES_CACHE_TTL_SECONDS: int = 60
    DOCTORS_CACHE_TTL_SECONDS: int = 24 * 60 * 60
    DOCTORS_CACHE_KEY: str = "hvq_doctors_cache"
    DOCTORS_PAGE_SIZE: int = 21

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def has_auth_credentials(self) -> bool:
        return bool(self.AUTH_USERNAME and self.AUTH_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    return Settings()
