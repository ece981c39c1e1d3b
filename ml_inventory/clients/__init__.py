"""Expose constructed client wrappers."""

from .mercadolivre_api import (
    AuthenticatedApiClient,
    MercadoLivreClient,
    NotFoundError,
    ProviderError,
)
from .mercadolivre_auth import (
    MercadoLivreOAuthClient,
    NotConnectedError,
    OAuthStateEncoder,
    OAuthTokenExchangeError,
    SessionExpiredError,
)
from .sqlite_store import SQLiteStore

__all__ = [
    "AuthenticatedApiClient",
    "MercadoLivreClient",
    "MercadoLivreOAuthClient",
    "NotConnectedError",
    "NotFoundError",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "ProviderError",
    "SQLiteStore",
    "SessionExpiredError",
]
