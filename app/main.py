"""
Punto de entrada de la aplicación FastAPI.
Configura CORS, logging, clientes del backend y monta los routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_v1_router
from app.auth.session import AuthSession
from app.config import get_settings
from app.core.cache import TTLCache
from app.services.api_gateway import ApiGateway
from app.services.doctors_cache import DoctorsCache
from app.services.hospital_api import HospitalApi

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifecycle ────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Eventos de inicio y cierre de la aplicación."""
    # Startup
    auth = AuthSession(settings) if settings.has_auth_credentials else None
    if auth is None:
        logger.warning("Sin credenciales de autenticación: las peticiones irán sin token")

    gateway = ApiGateway(settings, auth=auth)
    app.state.gateway = gateway
    app.state.hospital_api = HospitalApi(gateway)
    app.state.doctors_cache = DoctorsCache(app.state.hospital_api, settings=settings)
    app.state.specialties_cache = TTLCache(settings.SPECIALTIES_CACHE_TTL_SECONDS)
    logger.info("%s iniciando en modo %s (backend %s)", settings.APP_NAME, settings.APP_ENV, settings.API_BASE_URL)
    yield
    # Shutdown
    logger.info("%s cerrando...", settings.APP_NAME)
    app.state.doctors_cache.clear_cache()
    app.state.specialties_cache.clear()
    await gateway.aclose()
    if auth is not None:
        await auth.aclose()


# ── App ──────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    description="API del directorio hospitalario: especialidades, médicos y agendas",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Global Exception Handler ────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Captura excepciones no manejadas para evitar exponer detalles internos."""
    logger.exception("Error no manejado en %s %s", request.method, request.url.path)
    if settings.DEBUG and not settings.is_production:
        # En desarrollo, mostrar detalles
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc), "type": type(exc).__name__},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Error interno del servidor"},
    )


# ── Routers ──────────────────────────────────────────
app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)


# ── Health Check ─────────────────────────────────────
@app.get("/health", tags=["Health"])
async def health_check():
    """Endpoint de health check para monitoreo."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": "0.1.0",
        "environment": settings.APP_ENV,
    }
