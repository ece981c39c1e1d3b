"""Domain model exports."""

from .credentials import MarketplaceCredentials, TokenGrant

__all__ = ["MarketplaceCredentials", "TokenGrant"]
