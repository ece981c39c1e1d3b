"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token lifecycle
services and the operational scripts share a consistent configuration surface.
Settings are built once per process and handed to services through their
constructors.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class MercadoLivreSettings(BaseSettings):
    """Configuration required for interacting with the Mercado Livre APIs."""

    client_id: str = Field(..., validation_alias="ML_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="ML_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="ML_REDIRECT_URI")
    api_base_url: str = Field(
        "https://api.mercadolibre.com", validation_alias="ML_API_BASE_URL"
    )
    auth_base_url: str = Field(
        "https://auth.mercadolivre.com.br", validation_alias="ML_AUTH_BASE_URL"
    )
    site_id: str = Field(
        "MLB",
        validation_alias="ML_SITE_ID",
        description="Marketplace site used for competitor searches.",
    )
    request_timeout_seconds: float = Field(10.0, validation_alias="ML_REQUEST_TIMEOUT")


class OAuthSettings(BaseSettings):
    """OAuth flow and token lifecycle configuration."""

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    refresh_buffer_seconds: int = Field(
        300,
        validation_alias="OAUTH_REFRESH_BUFFER_SECONDS",
        description="Refresh access tokens this many seconds before they expire.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    database_path: str = Field("data/ml_inventory.db", validation_alias="DATABASE_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    mercadolivre: MercadoLivreSettings = Field(default_factory=MercadoLivreSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "MercadoLivreSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
