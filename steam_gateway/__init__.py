"""
Steam Gateway
=============

Backend for the mobile client: Steam OpenID sign-in, stateless session
tokens, and read-only Steam Web API proxies.

Packages:
    - auth: Steam OpenID verification and session tokens
    - games: Steam Web API proxies
"""

__version__ = "1.0.0"
