"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with CAMPUSGATE_ prefix.
Loaded once at import time; the signing key and expiry policy are not
hot-reloaded.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via CAMPUSGATE_* env vars."""

    # Auth
    jwt_secret: str = "change-me-in-production-dev-signing-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Realtime
    admin_room: str = "admin-dashboard"

    model_config = {"env_prefix": "CAMPUSGATE_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Refuse the placeholder signing key outside development."""
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production-dev-signing-key"
        ):
            raise ValueError(
                "CAMPUSGATE_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton — import this everywhere
settings = Settings()
