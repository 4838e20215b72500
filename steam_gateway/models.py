"""
Data Models Module

This module defines Pydantic models for the session payload and for the
JSON bodies returned by the gateway.
"""

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field


# ============================================================================
# Session Models
# ============================================================================

class SessionPayload(BaseModel):
    """
    Identity carried by a validated session token.

    Only ever built from a token whose signature and expiry have been
    checked; never from client-supplied fields.
    """
    subject: str = Field(..., description="Steam ID the token was minted for")
    issued_at: datetime = Field(..., description="Issue time (UTC)")
    expires_at: datetime = Field(..., description="Expiry time (UTC), exclusive")

    @property
    def steam_id(self) -> str:
        return self.subject


# ============================================================================
# Response Models
# ============================================================================

class AuthUrlResponse(BaseModel):
    """Response of the login endpoint."""
    authUrl: str = Field(..., description="Steam OpenID URL to redirect the user to")
    message: str = Field(
        default="Redirect user to this URL to authenticate with Steam",
        description="Human readable hint",
    )


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "steam-gateway"
    version: str


class ServiceInfo(BaseModel):
    service: str = "steam-gateway"
    version: str
    description: str
    endpoints: Dict[str, str]
