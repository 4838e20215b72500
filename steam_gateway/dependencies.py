"""
FastAPI dependencies shared by the routers.

Services live on ``app.state`` and are created by the application factory
and its lifespan, so tests can swap any of them on a freshly built app.
"""

import logging
from typing import Optional

import httpx
from fastapi import Header, HTTPException, Request, status

from steam_gateway.auth.openid import SteamOpenIDVerifier
from steam_gateway.auth.session import SessionTokenService, extract_bearer_token
from steam_gateway.config import Settings
from steam_gateway.models import SessionPayload

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Shared outbound HTTP client from app state.

    Raises:
        HTTPException: 503 if the client has not been initialised
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="HTTP client not available",
        )
    return client


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_openid_verifier(request: Request) -> SteamOpenIDVerifier:
    settings = get_app_settings(request)
    return SteamOpenIDVerifier(
        http_client=get_http_client(request),
        timeout=settings.OPENID_VERIFY_TIMEOUT_SECONDS,
    )


async def require_session(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> SessionPayload:
    """
    Dependency for protected endpoints.

    Usage in routes:
        @router.get("/protected")
        async def route(session: SessionPayload = Depends(require_session)):
            return {"steamId": session.subject}

    Raises:
        HTTPException: 401 with the same detail for every failure kind
    """
    token = extract_bearer_token(authorization)
    session = None
    if token is not None:
        session = get_token_service(request).validate(token)
    else:
        logger.info(
            "Request without usable bearer token",
            extra={"path": request.url.path},
        )

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
