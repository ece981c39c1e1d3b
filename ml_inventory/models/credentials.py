"""
Domain models for marketplace OAuth credentials.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MarketplaceCredentials(BaseModel):
    """Decrypted view of a user's marketplace connection."""

    user_id: str = Field(..., description="Owning application user.")
    ml_user_id: str = Field(..., description="Remote marketplace account id.")
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class TokenGrant(BaseModel):
    """Payload returned by the marketplace token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int
    token_type: str = "Bearer"
    scope: Optional[str] = None
    user_id: Optional[int] = None


__all__ = ["MarketplaceCredentials", "TokenGrant"]
