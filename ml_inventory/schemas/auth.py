"""Schemas related to the marketplace OAuth flow."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by Mercado Livre.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class DisconnectRequest(BaseModel):
    user_id: str


class ConnectionStatus(BaseModel):
    connected: bool
    ml_user_id: Optional[str] = None
    nickname: Optional[str] = None
    expires_at: Optional[datetime] = None


__all__ = ["ConnectionStatus", "DisconnectRequest", "OAuthCallbackPayload"]
