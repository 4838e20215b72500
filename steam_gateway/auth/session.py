"""
Session Token Module
====================

Mints and validates the stateless session tokens handed to the client after
a verified Steam sign-in.

Tokens are HMAC-signed JWTs carrying the Steam ID, the issue time and an
expiry fixed at 30 days after issue. Any process holding the signing secret
can mint or validate a token; there is no server-side session store.
Rotating the secret invalidates every outstanding token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from jwt.utils import base64url_decode, base64url_encode

from steam_gateway.auth.errors import AuthenticationFailure, TokenExpired, TokenInvalid
from steam_gateway.models import SessionPayload

logger = logging.getLogger(__name__)


SESSION_TTL = timedelta(days=30)
BEARER_PREFIX = "Bearer "

# Tolerance for tokens minted by an instance whose clock runs slightly ahead.
CLOCK_SKEW_SECONDS = 30


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SessionTokenService:
    """
    Issues and validates session tokens.

    Args:
        secret: Process-wide signing secret, loaded once at startup
        algorithm: HMAC algorithm (HS256, HS384 or HS512)
        clock: Callable returning the current aware UTC datetime
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utc_now,
    ):
        if not secret:
            raise ValueError("Session signing secret is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock

    # =========================================================================
    # Token Creation
    # =========================================================================

    def mint(self, steam_id: str) -> str:
        """
        Create a session token for a verified Steam ID.

        Args:
            steam_id: Identity returned by the OpenID verifier

        Returns:
            Encoded JWT string
        """
        if not isinstance(steam_id, str) or not steam_id:
            raise ValueError("Cannot mint a session token without a subject")

        issued_at = int(self._clock().timestamp())
        expires_at = issued_at + int(SESSION_TTL.total_seconds())
        payload: Dict[str, Any] = {
            "sub": steam_id,
            "steamId": steam_id,
            "iat": issued_at,
            "exp": expires_at,
        }

        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)

        logger.debug(
            "Created session token",
            extra={"steam_id": steam_id, "expires_at": expires_at},
        )
        return token

    # =========================================================================
    # Token Verification
    # =========================================================================

    def validate(self, token: Optional[str]) -> Optional[SessionPayload]:
        """
        Verify a session token.

        Returns:
            SessionPayload if the signature matches and the token has not
            expired, None otherwise. Never raises.
        """
        try:
            return self._decode(token)
        except AuthenticationFailure as e:
            logger.warning(
                f"Session token rejected: {e.reason}",
                extra={"failure_kind": e.kind, "reason": e.reason},
            )
            return None

    def _decode(self, token: Optional[str]) -> SessionPayload:
        if not isinstance(token, str) or not token:
            raise TokenInvalid("empty token")

        segments = token.split(".")
        if len(segments) != 3:
            raise TokenInvalid("token is not a compact JWS")
        self._check_signature_encoding(segments[2])

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_signature": True,
                    # Time checks use the injected clock below.
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalid(f"{type(e).__name__}: {e}") from e

        subject = claims.get("sub")
        issued_at = claims.get("iat")
        expires_at = claims.get("exp")

        if not isinstance(subject, str) or not subject:
            raise TokenInvalid("subject claim is empty")
        if not _is_timestamp(issued_at) or not _is_timestamp(expires_at):
            raise TokenInvalid("iat/exp claims are not numeric")

        now = self._clock().timestamp()
        if issued_at > now + CLOCK_SKEW_SECONDS:
            raise TokenInvalid("token issued in the future")
        if now >= expires_at:
            raise TokenExpired("token has expired")

        try:
            return SessionPayload(
                subject=subject,
                issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
                expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            )
        except (OverflowError, ValueError, OSError) as e:
            raise TokenInvalid("iat/exp claims are out of range") from e

    @staticmethod
    def _check_signature_encoding(segment: str) -> None:
        # base64url leaves spare bits in the last character; only the
        # canonical spelling of the signature is accepted.
        try:
            canonical = base64url_encode(base64url_decode(segment)).decode("ascii")
        except (ValueError, TypeError) as e:
            raise TokenInvalid("signature segment is not base64url") from e
        if not segment or canonical != segment:
            raise TokenInvalid("signature segment is not canonically encoded")


# =============================================================================
# Helper Functions
# =============================================================================

def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header.

    The "Bearer " prefix is matched case-sensitively and must be followed
    by a non-blank token.

    Returns:
        Token string, or None if the header is missing or malformed
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None

    token = authorization[len(BEARER_PREFIX):]
    if not token.strip():
        return None
    return token


__all__ = [
    "SESSION_TTL",
    "SessionTokenService",
    "extract_bearer_token",
    "utc_now",
]
