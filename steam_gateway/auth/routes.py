"""
Authentication routes for Steam OpenID login and callback handling.

This module exposes the two halves of the redirect flow:
- /steam-login returns the Steam URL the client should open
- /steam-callback receives Steam's redirect, verifies it and hands the
  mobile app a session token through its deep-link scheme
"""

import logging
from html import escape
from typing import Dict
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse

from steam_gateway.auth.errors import AuthRequestError
from steam_gateway.auth.openid import SteamOpenIDVerifier, build_auth_url
from steam_gateway.auth.session import SessionTokenService
from steam_gateway.config import Settings
from steam_gateway.dependencies import (
    get_app_settings,
    get_openid_verifier,
    get_token_service,
)
from steam_gateway.models import AuthUrlResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
)


# =============================================================================
# Login Endpoint
# =============================================================================

@auth_router.get("/steam-login", response_model=AuthUrlResponse)
async def steam_login(settings: Settings = Depends(get_app_settings)):
    """
    Return the Steam OpenID authentication URL for the client to redirect to.

    The callback URL and realm are derived from the configured public base
    URL so they match what the callback endpoint later expects.
    """
    try:
        auth_url = build_auth_url(settings.steam_callback_url, settings.public_base_url)
    except AuthRequestError as e:
        logger.error(f"Error generating auth URL: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate authentication URL",
        )

    return AuthUrlResponse(authUrl=auth_url)


# =============================================================================
# Callback Endpoint
# =============================================================================

def _first_values(request: Request) -> Dict[str, str]:
    """Flatten the query string, keeping the first value of repeated keys."""
    params = request.query_params
    return {key: params.getlist(key)[0] for key in params.keys()}


@auth_router.get("/steam-callback", response_class=HTMLResponse)
async def steam_callback(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    verifier: SteamOpenIDVerifier = Depends(get_openid_verifier),
    token_service: SessionTokenService = Depends(get_token_service),
):
    """
    Handle the OpenID callback from Steam.

    This endpoint:
    1. Forwards the query parameters verbatim to the assertion verifier
    2. Lets the verifier confirm the assertion with Steam
    3. Mints a session token for the verified Steam ID
    4. Returns an HTML page that opens the app's deep link

    Every verification failure produces the same page; the reason is only
    visible in the logs.
    """
    deep_link_base = settings.APP_DEEP_LINK_BASE

    try:
        steam_id = await verifier.verify_assertion(
            _first_values(request),
            expected_return_to=settings.steam_callback_url,
        )

        if not steam_id:
            return _render_error_page(
                deep_link_base,
                title="Authentication Failed",
                message="Could not verify your Steam identity. Please try again.",
                error_code="verification_failed",
                status_code=status.HTTP_401_UNAUTHORIZED,
            )

        token = token_service.mint(steam_id)
        logger.info("Steam sign-in completed", extra={"steam_id": steam_id})

        return _render_success_page(deep_link_base, token=token, steam_id=steam_id)

    except Exception as e:
        # Log the full error but don't expose details to user
        logger.error(f"Error in Steam callback: {e}", exc_info=True)
        return _render_error_page(
            deep_link_base,
            title="Error",
            message="An error occurred during authentication. Please try again.",
            error_code="server_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# =============================================================================
# HTML Response Templates
# =============================================================================

def build_success_link(deep_link_base: str, token: str, steam_id: str) -> str:
    query = urlencode({"token": token, "steamId": steam_id})
    return f"{deep_link_base}/success?{query}"


def build_error_link(deep_link_base: str, error_code: str) -> str:
    return f"{deep_link_base}/error?{urlencode({'message': error_code})}"


def _render_success_page(deep_link_base: str, token: str, steam_id: str) -> HTMLResponse:
    """
    Render success page that redirects straight into the mobile app.

    Args:
        deep_link_base: App deep-link prefix (e.g. com.wntp://auth)
        token: Session token
        steam_id: Verified Steam ID
    """
    redirect_url = escape(build_success_link(deep_link_base, token, steam_id), quote=True)

    html_content = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <title>Redirecting...</title>
        <style>
            body {{ font-family: Arial, sans-serif; padding: 20px; max-width: 600px; margin: 0 auto; text-align: center; }}
            .success {{ color: green; }}
        </style>
    </head>
    <body>
        <h1 class="success">Authentication Successful!</h1>
        <p>Redirecting to the app...</p>
        <p><a id="open-app" href="{redirect_url}">Open the app</a></p>
        <script>
            window.location.assign(document.getElementById("open-app").href);
        </script>
    </body>
    </html>
    """

    return HTMLResponse(content=html_content, status_code=status.HTTP_200_OK)


def _render_error_page(
    deep_link_base: str,
    title: str,
    message: str,
    error_code: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTMLResponse:
    """
    Render error page for authentication failures.

    Args:
        title: Error title
        message: Generic error message (never the failure reason)
        error_code: Code passed to the app in the error deep link
        status_code: HTTP status code
    """
    redirect_url = escape(build_error_link(deep_link_base, error_code), quote=True)

    html_content = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <title>{escape(title)}</title>
    </head>
    <body>
        <h1>{escape(title)}</h1>
        <p>{escape(message)}</p>
        <a id="open-app" href="{redirect_url}">Return to the app</a>
        <script>
            setTimeout(function() {{
                window.location.href = document.getElementById("open-app").href;
            }}, 2000);
        </script>
    </body>
    </html>
    """

    return HTMLResponse(content=html_content, status_code=status_code)
