"""
Steam OpenID 2.0 assertion handling.

This module handles:
- Building the checkid_setup URL the client is redirected to
- Verifying the positive assertion Steam sends back to the callback
- Extracting the Steam ID from the verified claimed identifier

Steam does not publish a stable association for relying parties, so every
assertion is confirmed with a direct check_authentication call to the
provider. That call is the only thing that turns the redirect parameters
into a provider-attested identity and it is never skipped.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlencode, urlsplit

import httpx
from pydantic import BaseModel, ConfigDict

from steam_gateway.auth.errors import (
    AssertionRejected,
    AuthenticationFailure,
    AuthRequestError,
    IdentityFormatMismatch,
    MalformedAssertion,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol Constants
# =============================================================================

STEAM_OPENID_ENDPOINT = "https://steamcommunity.com/openid/login"
OPENID_NS = "http://specs.openid.net/auth/2.0"
IDENTIFIER_SELECT = "http://specs.openid.net/auth/2.0/identifier_select"

MODE_SETUP = "checkid_setup"
MODE_POSITIVE = "id_res"
MODE_CHECK = "check_authentication"

STEAM_ID_PATTERN = re.compile(r"https?://steamcommunity\.com/openid/id/([0-9]+)")

REQUIRED_FIELDS = (
    "openid.mode",
    "openid.signed",
    "openid.sig",
    "openid.claimed_id",
    "openid.op_endpoint",
)

# Unsigned fields the provider needs to look up the signature.
CONFIRMATION_FIELDS = (
    "openid.ns",
    "openid.assoc_handle",
    "openid.signed",
    "openid.sig",
    "openid.invalidate_handle",
)


# =============================================================================
# Authentication Request
# =============================================================================

class AuthRequest(BaseModel):
    """Parameters of a single login attempt. Never persisted."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    return_to: str
    realm: str
    mode: str = MODE_SETUP
    ns: str = OPENID_NS

    @property
    def query(self) -> Dict[str, str]:
        return {
            "openid.ns": self.ns,
            "openid.mode": self.mode,
            "openid.return_to": self.return_to,
            "openid.realm": self.realm,
            "openid.identity": IDENTIFIER_SELECT,
            "openid.claimed_id": IDENTIFIER_SELECT,
        }

    @property
    def url(self) -> str:
        return f"{self.endpoint}?{urlencode(self.query)}"


def _parse_absolute_url(value: str, name: str):
    if not isinstance(value, str) or not value:
        raise AuthRequestError(f"{name} is required")

    try:
        parts = urlsplit(value)
    except ValueError as e:
        raise AuthRequestError(f"{name} is not a valid URL: {value!r}") from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise AuthRequestError(f"{name} must be an absolute http(s) URL: {value!r}")
    if parts.fragment:
        raise AuthRequestError(f"{name} must not contain a fragment: {value!r}")
    return parts


def build_auth_request(
    callback_url: str,
    realm: str,
    endpoint: str = STEAM_OPENID_ENDPOINT,
) -> AuthRequest:
    """
    Build the OpenID authentication request for a login attempt.

    Args:
        callback_url: Absolute URL Steam redirects back to (openid.return_to)
        realm: Trust root shown to the user; callback_url must fall under it

    Returns:
        AuthRequest with return_to and realm copied verbatim

    Raises:
        AuthRequestError: If either URL is malformed or the callback is
            outside the realm
    """
    callback = _parse_absolute_url(callback_url, "callback_url")
    trust_root = _parse_absolute_url(realm, "realm")

    if (callback.scheme, callback.netloc.lower()) != (trust_root.scheme, trust_root.netloc.lower()):
        raise AuthRequestError(
            f"callback_url {callback_url!r} does not match realm {realm!r}"
        )
    realm_path = trust_root.path
    if realm_path and not realm_path.endswith("/"):
        inside = callback.path == realm_path or callback.path.startswith(realm_path + "/")
    else:
        inside = callback.path.startswith(realm_path)
    if not inside:
        raise AuthRequestError(
            f"callback_url path {callback.path!r} is outside realm path {trust_root.path!r}"
        )

    return AuthRequest(endpoint=endpoint, return_to=callback_url, realm=realm)


def build_auth_url(callback_url: str, realm: str) -> str:
    """Return the Steam login URL for the given callback and realm."""
    return build_auth_request(callback_url, realm).url


# =============================================================================
# Assertion Verification
# =============================================================================

def parse_key_value_form(body: str) -> Dict[str, str]:
    """
    Parse an OpenID key-value form body ("key:value" per line).

    Lines without a colon are ignored; the first occurrence of a key wins.
    """
    values: Dict[str, str] = {}
    for line in body.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        values.setdefault(key.strip(), value.strip())
    return values


def signed_fields(params: Mapping[str, str]) -> List[str]:
    """Return the field names listed in openid.signed, in order."""
    raw = params.get("openid.signed") or ""
    return [name.strip() for name in raw.split(",") if name.strip()]


def extract_steam_id(claimed_id: str) -> str:
    """
    Extract the numeric Steam ID from a claimed identifier URL.

    Raises:
        IdentityFormatMismatch: If the identifier is not a Steam ID URL
    """
    match = STEAM_ID_PATTERN.fullmatch(claimed_id or "")
    if not match:
        raise IdentityFormatMismatch("claimed_id does not match the Steam ID template")
    return match.group(1)


class SteamOpenIDVerifier:
    """
    Verifies Steam OpenID callback assertions.

    The op_endpoint is pinned: the confirmation call always goes to the
    configured endpoint and assertions naming any other endpoint are
    rejected before the network is touched.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str = STEAM_OPENID_ENDPOINT,
        timeout: float = 5.0,
    ):
        self._client = http_client
        self._endpoint = endpoint
        self._timeout = timeout

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def verify_assertion(
        self,
        params: Mapping[str, str],
        expected_return_to: Optional[str] = None,
    ) -> Optional[str]:
        """
        Verify a callback assertion and return the Steam ID.

        Args:
            params: Callback query parameters, forwarded verbatim
            expected_return_to: If given, openid.return_to must be signed
                and equal to it

        Returns:
            Steam ID string, or None when authentication failed for any reason
        """
        try:
            return await self._verify(params, expected_return_to)
        except AuthenticationFailure as e:
            logger.warning(
                f"OpenID assertion rejected: {e.reason}",
                extra={"failure_kind": e.kind, "reason": e.reason},
            )
            return None

    async def _verify(
        self,
        params: Mapping[str, str],
        expected_return_to: Optional[str],
    ) -> str:
        self.check_structure(params, expected_return_to)
        await self.confirm_with_provider(params)
        steam_id = extract_steam_id(params["openid.claimed_id"])

        logger.info("OpenID assertion verified", extra={"steam_id": steam_id})
        return steam_id

    def check_structure(
        self,
        params: Mapping[str, str],
        expected_return_to: Optional[str] = None,
    ) -> None:
        """
        Local checks run before any network call.

        Raises:
            MalformedAssertion: Missing fields or inconsistent signed list
            AssertionRejected: Negative or non-positive assertion mode
        """
        mode = params.get("openid.mode")
        if not mode:
            raise MalformedAssertion("missing openid.mode")
        if mode != MODE_POSITIVE:
            raise AssertionRejected(f"assertion mode is {mode!r}")

        missing = [name for name in REQUIRED_FIELDS if not params.get(name)]
        if missing:
            raise MalformedAssertion(f"missing fields: {', '.join(missing)}")

        if params["openid.op_endpoint"] != self._endpoint:
            raise MalformedAssertion("op_endpoint is not the pinned provider endpoint")

        signed = signed_fields(params)
        for name in ("claimed_id", "op_endpoint"):
            if name not in signed:
                raise MalformedAssertion(f"{name} is not covered by the signature")

        absent = [
            name for name in signed if f"openid.{name}" not in params
        ]
        if absent:
            raise MalformedAssertion(
                f"signed fields absent from response: {', '.join(absent)}"
            )

        identity = params.get("openid.identity")
        if identity is not None:
            if "identity" not in signed:
                raise MalformedAssertion("identity is not covered by the signature")
            if identity != params["openid.claimed_id"]:
                raise MalformedAssertion("identity does not match claimed_id")

        if expected_return_to is not None:
            if "return_to" not in signed:
                raise MalformedAssertion("return_to is not covered by the signature")
            if params.get("openid.return_to") != expected_return_to:
                raise MalformedAssertion("return_to does not match the callback URL")

    def build_confirmation_params(self, params: Mapping[str, str]) -> Dict[str, str]:
        """
        Build the check_authentication body.

        Only the signature bookkeeping fields and the fields named in
        openid.signed are copied; everything else in the response is dropped.
        """
        body: Dict[str, str] = {}
        for name in CONFIRMATION_FIELDS:
            if name in params:
                body[name] = params[name]
        for name in signed_fields(params):
            key = f"openid.{name}"
            body[key] = params[key]

        body["openid.mode"] = MODE_CHECK
        return body

    async def confirm_with_provider(self, params: Mapping[str, str]) -> None:
        """
        Ask Steam to confirm the assertion. Exactly one request, no retry.

        Raises:
            AssertionRejected: Non-200 reply, is_valid not true, timeout or
                network failure
        """
        body = self.build_confirmation_params(params)

        try:
            response = await self._client.post(
                self._endpoint,
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise AssertionRejected("check_authentication timed out") from e
        except httpx.HTTPError as e:
            raise AssertionRejected(f"check_authentication failed: {e}") from e

        if response.status_code != 200:
            raise AssertionRejected(
                f"check_authentication returned HTTP {response.status_code}"
            )

        reply = parse_key_value_form(response.text)
        if reply.get("is_valid") != "true":
            raise AssertionRejected("provider reported is_valid other than true")


__all__ = [
    "STEAM_OPENID_ENDPOINT",
    "AuthRequest",
    "build_auth_request",
    "build_auth_url",
    "extract_steam_id",
    "parse_key_value_form",
    "signed_fields",
    "SteamOpenIDVerifier",
]
