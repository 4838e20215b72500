"""
Games Package
=============

Read-only proxies to the Steam Web API.

Main Components:
----------------
- routes.py: FastAPI router with /owned, /details and /reviews

Usage:
------
    from steam_gateway.games import games_router
    app.include_router(games_router, prefix="/api")
"""

from .routes import games_router

__all__ = ["games_router"]
