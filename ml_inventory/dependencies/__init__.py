"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_api_client,
    get_market_analyzer,
    get_marketplace_client,
    get_oauth_client,
    get_oauth_state_encoder,
    get_sqlite_store,
    get_token_cipher_service,
    get_token_manager,
)
from .config import AppSettingsDep, get_app_settings

__all__ = [
    "AppSettingsDep",
    "get_api_client",
    "get_app_settings",
    "get_market_analyzer",
    "get_marketplace_client",
    "get_oauth_client",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_manager",
]
