"""
Shared fixtures for the gateway tests.

Outbound traffic never leaves the process: the shared httpx client is built
on an httpx.MockTransport whose handler records every request and answers
with a canned response that individual tests can replace.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from steam_gateway.auth.openid import OPENID_NS, STEAM_OPENID_ENDPOINT
from steam_gateway.auth.session import SessionTokenService
from steam_gateway.config import Settings
from steam_gateway.main import create_app


TEST_SECRET = "test-session-secret-0123456789abcdef"
BASE_URL = "https://app.example"
STEAM_ID = "76561197960287930"


class FakeUpstream:
    """MockTransport handler that records requests."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(
                200, text=f"ns:{OPENID_NS}\nis_valid:true\n"
            )
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        SESSION_JWT_SECRET=TEST_SECRET,
        PUBLIC_BASE_URL=BASE_URL,
        STEAM_API_KEY="test-steam-api-key",
    )


@pytest.fixture
def session_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def steam_id() -> str:
    return STEAM_ID


@pytest.fixture
def callback_url(settings) -> str:
    return settings.steam_callback_url


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def app(settings, http_client):
    app = create_app(settings)
    app.state.http_client = http_client
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def token_service() -> SessionTokenService:
    return SessionTokenService(secret=TEST_SECRET)


@pytest.fixture
def steam_assertion(callback_url) -> Callable[..., Dict[str, str]]:
    """Factory for a well-formed positive assertion as Steam sends it."""

    def make(steam_id: str = STEAM_ID) -> Dict[str, str]:
        claimed_id = f"https://steamcommunity.com/openid/id/{steam_id}"
        return {
            "openid.ns": OPENID_NS,
            "openid.mode": "id_res",
            "openid.op_endpoint": STEAM_OPENID_ENDPOINT,
            "openid.claimed_id": claimed_id,
            "openid.identity": claimed_id,
            "openid.return_to": callback_url,
            "openid.response_nonce": "2024-01-01T12:00:00ZaBcDeF",
            "openid.assoc_handle": "1234567890",
            "openid.signed": "signed,op_endpoint,claimed_id,identity,return_to,response_nonce,assoc_handle",
            "openid.sig": "W0uYvA2jTCt2Kc4Jc2o9i3uUwq8=",
        }

    return make
