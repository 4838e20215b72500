"""
Game Proxy Tests

Tests for steam_gateway/games/routes.py

Test Coverage:
--------------
1. Session token enforcement on /owned (single generic 401)
2. Steam ID taken from the token, API key added server-side
3. appId validation on public endpoints
4. Upstream error mapping (status pass-through, timeout, network errors)
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi import status

from steam_gateway.auth.session import SessionTokenService


@pytest.fixture
def auth_headers(app, steam_id):
    token = app.state.token_service.mint(steam_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def steam_json(upstream):
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": {"game_count": 1, "games": [{"appid": 570}]}})

    upstream.responder = respond
    return upstream


# ============================================================================
# Authentication Tests
# ============================================================================

class TestOwnedGamesAuthentication:

    def test_requires_token(self, client, upstream):
        response = client.get("/api/games/owned")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"
        assert response.headers["www-authenticate"] == "Bearer"
        assert upstream.requests == []

    def test_prefix_is_case_sensitive(self, client, auth_headers):
        token = auth_headers["Authorization"].split(" ", 1)[1]
        response = client.get("/api/games/owned", headers={"Authorization": f"bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"

    def test_tampered_token_is_rejected(self, client, auth_headers):
        header = auth_headers["Authorization"]
        tampered = header[:-1] + ("A" if header[-1] != "A" else "B")
        response = client.get("/api/games/owned", headers={"Authorization": tampered})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"

    def test_expired_token_is_rejected(self, client, steam_id, session_secret):
        issued = datetime.now(timezone.utc) - timedelta(days=31)
        old_service = SessionTokenService(secret=session_secret, clock=lambda: issued)
        token = old_service.mint(steam_id)

        response = client.get("/api/games/owned", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"


# ============================================================================
# Owned Games
# ============================================================================

class TestOwnedGames:

    def test_forwards_steam_id_from_token(self, client, auth_headers, steam_json, steam_id):
        response = client.get("/api/games/owned", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["response"]["game_count"] == 1

        request = steam_json.requests[0]
        assert request.url.host == "api.steampowered.com"
        assert request.url.path == "/IPlayerService/GetOwnedGames/v1/"
        assert request.url.params["steamid"] == steam_id
        assert request.url.params["key"] == "test-steam-api-key"
        assert request.url.params["include_appinfo"] == "1"
        assert request.url.params["include_played_free_games"] == "1"
        assert request.url.params["format"] == "json"

    def test_authorization_header_is_not_forwarded(self, client, auth_headers, steam_json):
        client.get("/api/games/owned", headers=auth_headers)

        assert "authorization" not in steam_json.requests[0].headers

    def test_missing_api_key_is_a_server_error(self, client, app, auth_headers, upstream):
        app.state.settings = app.state.settings.model_copy(update={"STEAM_API_KEY": None})

        response = client.get("/api/games/owned", headers=auth_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Server configuration error"
        assert upstream.requests == []


# ============================================================================
# Public Store Lookups
# ============================================================================

class TestStoreLookups:

    def test_details_forwards_app_id(self, client, steam_json):
        response = client.get("/api/games/details", params={"appId": "570"})

        assert response.status_code == status.HTTP_200_OK
        request = steam_json.requests[0]
        assert request.url.host == "store.steampowered.com"
        assert request.url.path == "/api/appdetails"
        assert request.url.params["appids"] == "570"

    def test_reviews_forwards_app_id(self, client, steam_json):
        response = client.get("/api/games/reviews", params={"appId": "570"})

        assert response.status_code == status.HTTP_200_OK
        request = steam_json.requests[0]
        assert request.url.path == "/appreviews/570"
        assert request.url.params["json"] == "1"
        assert request.url.params["language"] == "all"
        assert request.url.params["purchase_type"] == "all"

    @pytest.mark.parametrize("path", ["/api/games/details", "/api/games/reviews"])
    def test_app_id_is_required(self, client, upstream, path):
        response = client.get(path)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "appId parameter is required"
        assert upstream.requests == []

    @pytest.mark.parametrize("app_id", ["abc", "570/../../x", "570&key=1", "²", "٥٧٠"])
    def test_app_id_must_be_numeric(self, client, upstream, app_id):
        response = client.get("/api/games/reviews", params={"appId": app_id})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert upstream.requests == []

    def test_public_lookups_need_no_token(self, client, steam_json):
        response = client.get("/api/games/details", params={"appId": "570"})
        assert response.status_code == status.HTTP_200_OK


# ============================================================================
# Upstream Error Mapping
# ============================================================================

class TestUpstreamErrors:

    def test_upstream_status_is_passed_through(self, client, upstream):
        upstream.responder = lambda request: httpx.Response(404)

        response = client.get("/api/games/details", params={"appId": "570"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["error"] == "Steam Store API request failed"
        assert response.json()["detail"]["details"] == "Not Found"

    def test_timeout_maps_to_504(self, client, upstream):
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        upstream.responder = timeout

        response = client.get("/api/games/details", params={"appId": "570"})

        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT

    def test_network_error_maps_to_503(self, client, upstream):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        upstream.responder = refuse

        response = client.get("/api/games/reviews", params={"appId": "570"})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_non_json_body_maps_to_502(self, client, upstream):
        upstream.responder = lambda request: httpx.Response(200, text="<html>maintenance</html>")

        response = client.get("/api/games/details", params={"appId": "570"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY

    def test_upstream_redirect_is_followed(self, client, upstream):
        def redirect_once(request):
            if request.url.path == "/api/appdetails":
                return httpx.Response(
                    302, headers={"Location": "https://store.steampowered.com/api/appdetails/v2?appids=570"}
                )
            return httpx.Response(200, json={"570": {"success": True}})

        upstream.responder = redirect_once

        response = client.get("/api/games/details", params={"appId": "570"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["570"]["success"] is True
        assert [r.url.path for r in upstream.requests] == ["/api/appdetails", "/api/appdetails/v2"]
