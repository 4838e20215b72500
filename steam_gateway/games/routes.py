"""
Game Routes - Steam Web API Proxy
=================================

Read-only proxies to the Steam Web API and Store API.

Security Model:
---------------
1. /owned requires a valid session token; the Steam ID comes from the
   token, never from the request
2. The Steam Web API key stays on the server and is added here
3. /details and /reviews are public Store API lookups
4. The client's Authorization header is never forwarded upstream

Endpoints:
----------
- GET /owned: Games owned by the signed-in user
- GET /details?appId=: Store details for an app
- GET /reviews?appId=: Review summary for an app
"""

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from steam_gateway.config import Settings
from steam_gateway.dependencies import get_app_settings, get_http_client, require_session
from steam_gateway.models import SessionPayload

logger = logging.getLogger(__name__)

STEAM_OWNED_GAMES_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v1/"
STEAM_APP_DETAILS_URL = "https://store.steampowered.com/api/appdetails"
STEAM_APP_REVIEWS_URL = "https://store.steampowered.com/appreviews/{app_id}"

games_router = APIRouter(
    prefix="/games",
    tags=["games"],
)


# ============================================================================
# Upstream Helper
# ============================================================================

def _require_app_id(app_id: Optional[str]) -> str:
    if not app_id or not app_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="appId parameter is required",
        )
    app_id = app_id.strip()
    if not (app_id.isascii() and app_id.isdigit()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="appId must be numeric",
        )
    return app_id


async def fetch_steam_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, str]],
    timeout: float,
    upstream: str,
) -> Any:
    """
    GET a Steam endpoint and return its JSON body.

    Raises:
        HTTPException: Upstream status on non-2xx responses, 504 on timeout,
            503 when Steam cannot be reached
    """
    try:
        response = await client.get(url, params=params, timeout=timeout, follow_redirects=True)
    except httpx.TimeoutException:
        logger.error(f"{upstream} request timeout")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"{upstream} timeout - please try again",
        )
    except httpx.HTTPError as e:
        logger.error(f"{upstream} network error: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Cannot reach {upstream}",
        )

    if not response.is_success:
        logger.error(
            f"{upstream} error: {response.status_code} {response.reason_phrase}",
            extra={"status_code": response.status_code},
        )
        raise HTTPException(
            status_code=response.status_code,
            detail={
                "error": f"{upstream} request failed",
                "details": response.reason_phrase,
            },
        )

    try:
        return response.json()
    except ValueError:
        logger.error(f"{upstream} returned a non-JSON body")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{upstream} returned an invalid response",
        )


# ============================================================================
# Proxy Endpoints
# ============================================================================

@games_router.get("/owned")
async def owned_games(
    session: SessionPayload = Depends(require_session),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Proxy IPlayerService/GetOwnedGames for the signed-in user."""
    if not settings.STEAM_API_KEY:
        logger.error("STEAM_API_KEY not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        )

    params = {
        "key": settings.STEAM_API_KEY,
        "steamid": session.subject,
        "include_appinfo": "1",
        "include_played_free_games": "1",
        "format": "json",
    }

    return await fetch_steam_json(
        client,
        STEAM_OWNED_GAMES_URL,
        params,
        settings.STEAM_API_TIMEOUT_SECONDS,
        upstream="Steam API",
    )


@games_router.get("/details")
async def game_details(
    app_id: Optional[str] = Query(None, alias="appId"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Proxy the Store appdetails lookup (public)."""
    app_id = _require_app_id(app_id)

    return await fetch_steam_json(
        client,
        STEAM_APP_DETAILS_URL,
        {"appids": app_id},
        settings.STEAM_API_TIMEOUT_SECONDS,
        upstream="Steam Store API",
    )


@games_router.get("/reviews")
async def game_reviews(
    app_id: Optional[str] = Query(None, alias="appId"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Proxy the Store appreviews summary (public)."""
    app_id = _require_app_id(app_id)

    return await fetch_steam_json(
        client,
        STEAM_APP_REVIEWS_URL.format(app_id=app_id),
        {"json": "1", "language": "all", "purchase_type": "all"},
        settings.STEAM_API_TIMEOUT_SECONDS,
        upstream="Steam reviews API",
    )
