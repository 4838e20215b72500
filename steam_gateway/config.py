"""
Configuration module for the Steam sign-in gateway.

This module uses Pydantic Settings to load and validate environment variables
for session token signing, the public base URL used to build OpenID return
addresses, Steam Web API access, and CORS settings.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOCAL_BASE_URL = "http://localhost:3000"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The settings object is built once at startup and handed to the
    application factory; nothing below the HTTP layer reads the environment.
    """

    # =========================================================================
    # Session Token Configuration
    # =========================================================================

    SESSION_JWT_SECRET: str = Field(
        ...,
        description="Secret key for signing session tokens (must be cryptographically secure)",
        min_length=32,
    )

    SESSION_JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, or HS512)",
    )

    # =========================================================================
    # Public Addressing
    # =========================================================================

    PUBLIC_BASE_URL: Optional[str] = Field(
        None,
        description="Externally reachable base URL (e.g., https://api.example.com)",
    )

    VERCEL_URL: Optional[str] = Field(
        None,
        description="Deployment host name injected by the hosting platform",
    )

    APP_DEEP_LINK_BASE: str = Field(
        default="com.wntp://auth",
        description="Deep link prefix the callback pages redirect the mobile app to",
        min_length=1,
    )

    # =========================================================================
    # Steam Configuration
    # =========================================================================

    STEAM_API_KEY: Optional[str] = Field(
        None,
        description="Steam Web API key (required for the owned games endpoint)",
    )

    OPENID_VERIFY_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Timeout for the check_authentication call to Steam",
        ge=0.5,
        le=30.0,
    )

    STEAM_API_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for proxied Steam Web API calls",
        ge=1.0,
        le=60.0,
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(default="0.0.0.0", description="Host to bind the server")

    PORT: int = Field(default=8080, description="Port to bind the server", ge=1, le=65535)

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def public_base_url(self) -> str:
        """
        Base URL the identity provider redirects back to.

        Returns:
            PUBLIC_BASE_URL, else https://VERCEL_URL, else the local dev URL,
            always without a trailing slash.
        """
        if self.PUBLIC_BASE_URL:
            return self.PUBLIC_BASE_URL.rstrip("/")
        if self.VERCEL_URL:
            return f"https://{self.VERCEL_URL}".rstrip("/")
        return LOCAL_BASE_URL

    @property
    def steam_callback_url(self) -> str:
        return f"{self.public_base_url}/api/auth/steam-callback"

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("SESSION_JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """
        Validate JWT algorithm is one of the supported HMAC algorithms.

        Raises:
            ValueError: If algorithm is not supported
        """
        allowed_algorithms = ["HS256", "HS384", "HS512"]

        if v not in allowed_algorithms:
            raise ValueError(
                f"JWT algorithm must be one of {allowed_algorithms}, got: {v}"
            )

        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def validate_public_base_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"PUBLIC_BASE_URL must start with http:// or https://, got: {v}"
            )
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate configuration settings and return a status report.

    Called during application startup so that misconfiguration shows up
    in the logs before the first login attempt.

    Returns:
        Dictionary with validation status and any warnings.
    """
    errors = []
    warnings = []

    if not settings.STEAM_API_KEY:
        warnings.append("STEAM_API_KEY is not set (owned games endpoint will fail)")

    base_url = settings.public_base_url
    if base_url == LOCAL_BASE_URL:
        warnings.append("No public base URL configured, Steam will redirect to localhost")
    elif not base_url.startswith("https://"):
        warnings.append("Public base URL is not HTTPS")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "callback_url": settings.steam_callback_url,
    }


if __name__ == "__main__":
    """
    Validate your .env configuration:
        python -m steam_gateway.config
    """
    try:
        config = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("Required variables: SESSION_JWT_SECRET")
        raise SystemExit(1)

    status = validate_configuration(config)
    print(f"Callback URL:   {status['callback_url']}")
    print(f"JWT Algorithm:  {config.SESSION_JWT_ALGORITHM}")

    for error in status["errors"]:
        print(f"  error: {error}")
    for warning in status["warnings"]:
        print(f"  warning: {warning}")

    raise SystemExit(0 if status["valid"] else 1)
