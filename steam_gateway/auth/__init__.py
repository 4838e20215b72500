"""
Authentication Package

This package handles Steam sign-in and the session tokens issued afterwards.

Modules:
- routes: Public authentication endpoints (/auth/steam-login, /auth/steam-callback)
- openid: Steam OpenID 2.0 request building and assertion verification
- session: Session token minting, validation and bearer header parsing
- errors: Failure taxonomy used for operator diagnostics

The authentication flow:
1. Client asks /auth/steam-login for the Steam URL and opens it
2. User signs in on Steam
3. Steam redirects back to /auth/steam-callback with an assertion
4. The assertion is confirmed directly with Steam and the Steam ID extracted
5. A session token is minted and passed to the app via its deep link
6. Client sends the token as "Authorization: Bearer <token>" afterwards
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
