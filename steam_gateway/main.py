"""
FastAPI Application Factory
===========================

Entry point for the Steam sign-in gateway that sits between the mobile
client and Steam.

Architecture:
    Mobile App → Gateway (this service) → Steam OpenID / Steam Web API

Routers:
    - /api/auth/*   : Steam OpenID login and callback
    - /api/games/*  : Steam Web API proxies (owned games needs a session token)
    - /health       : Health check endpoint

Running the Service:
    Development:
        uvicorn steam_gateway.main:create_app --factory --reload --port 8080

    Production:
        uvicorn steam_gateway.main:create_app --factory --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from steam_gateway import __version__
from steam_gateway.auth import auth_router
from steam_gateway.auth.session import SessionTokenService
from steam_gateway.config import Settings, get_settings, validate_configuration
from steam_gateway.games import games_router
from steam_gateway.models import HealthResponse, ServiceInfo

logger = logging.getLogger("steam_gateway.main")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Report configuration problems
        - Create the shared outbound HTTP client

    Shutdown:
        - Close the HTTP client
    """
    settings: Settings = app.state.settings

    status = validate_configuration(settings)
    for warning in status["warnings"]:
        logger.warning(f"Configuration warning: {warning}")
    for error in status["errors"]:
        logger.error(f"Configuration error: {error}")

    owns_client = getattr(app.state, "http_client", None) is None
    if owns_client:
        app.state.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.STEAM_API_TIMEOUT_SECONDS),
            headers={"User-Agent": f"steam-gateway/{__version__}"},
        )

    logger.info(
        "Steam gateway started",
        extra={"callback_url": settings.steam_callback_url, "version": __version__},
    )

    yield

    logger.info("Shutting down Steam gateway")
    if owns_client:
        await app.state.http_client.aclose()
        app.state.http_client = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Explicit settings; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    if settings is None:
        settings = get_settings()
        setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Steam Gateway",
        description="Steam sign-in and session tokens for the mobile client",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.token_service = SessionTokenService(
        secret=settings.SESSION_JWT_SECRET,
        algorithm=settings.SESSION_JWT_ALGORITHM,
    )
    app.state.http_client = None

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=False,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth_router)
    api_router.include_router(games_router)
    app.include_router(api_router)

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check():
        return HealthResponse(version=__version__)

    @app.get("/", tags=["System"], response_model=ServiceInfo)
    async def root():
        return ServiceInfo(
            version=__version__,
            description="Steam sign-in and session tokens for the mobile client",
            endpoints={
                "health": "/health",
                "docs": "/docs",
                "login": "/api/auth/steam-login",
                "callback": "/api/auth/steam-callback",
                "games": "/api/games",
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Log unhandled errors and return a generic error body.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            }
        )

    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "steam_gateway.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
