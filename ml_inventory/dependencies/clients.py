"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from ml_inventory.clients import (
    AuthenticatedApiClient,
    MercadoLivreClient,
    MercadoLivreOAuthClient,
    OAuthStateEncoder,
    SQLiteStore,
)
from ml_inventory.core.config import get_settings
from ml_inventory.services import MarketAnalyzer, TokenCipherService, TokenManager


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the marketplace client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.mercadolivre.client_secret)


@lru_cache()
def get_oauth_client() -> MercadoLivreOAuthClient:
    """Create a singleton Mercado Livre OAuth client."""
    return MercadoLivreOAuthClient(_settings().mercadolivre)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared user settings store."""
    return SQLiteStore(_settings().database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.mercadolivre.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_token_manager() -> TokenManager:
    """Provide the credential lifecycle manager."""
    return TokenManager(
        store=get_sqlite_store(),
        oauth_client=get_oauth_client(),
        oauth_settings=_settings().oauth,
        token_cipher=get_token_cipher_service(),
    )


@lru_cache()
def get_api_client() -> AuthenticatedApiClient:
    """Provide the bearer-authenticated API wrapper."""
    return AuthenticatedApiClient(get_token_manager(), _settings().mercadolivre)


def get_marketplace_client() -> MercadoLivreClient:
    """Build the typed marketplace endpoint client."""
    return MercadoLivreClient(get_api_client(), site_id=_settings().mercadolivre.site_id)


def get_market_analyzer() -> MarketAnalyzer:
    """Build a market analyzer over the marketplace client."""
    return MarketAnalyzer(get_token_manager(), get_marketplace_client())


__all__ = [
    "get_api_client",
    "get_market_analyzer",
    "get_marketplace_client",
    "get_oauth_client",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_manager",
]
