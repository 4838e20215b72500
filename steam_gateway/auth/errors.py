"""
Authentication failure taxonomy.

Each failure kind is distinguishable in logs through its ``reason`` code.
Clients never see these: the public verification and validation functions
turn every one of them into ``None`` and the HTTP layer answers with a
single generic message.
"""


class AuthRequestError(ValueError):
    """Raised when a login descriptor cannot be built from the given URLs."""


class AuthenticationFailure(Exception):
    """Base class for assertion and session token failures."""

    kind = "authentication_failed"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class MalformedAssertion(AuthenticationFailure):
    """Missing or ill-formed callback fields. No network call is made."""

    kind = "malformed_input"


class AssertionRejected(AuthenticationFailure):
    """Negative assertion, or the provider did not confirm it."""

    kind = "assertion_rejected"


class IdentityFormatMismatch(AuthenticationFailure):
    """Confirmed assertion whose claimed identifier is not a Steam ID URL."""

    kind = "identity_format_mismatch"


class TokenInvalid(AuthenticationFailure):
    kind = "token_invalid"


class TokenExpired(AuthenticationFailure):
    kind = "token_expired"


__all__ = [
    "AuthRequestError",
    "AuthenticationFailure",
    "MalformedAssertion",
    "AssertionRejected",
    "IdentityFormatMismatch",
    "TokenInvalid",
    "TokenExpired",
]
