"""
Mercado Livre OAuth utilities.

These helpers manage the authorization-code flow and the token refresh
endpoint. Persisting tokens is the job of ``TokenManager``; this module only
talks to the provider.
"""

from __future__ import annotations

import base64
import hmac
import json
from hashlib import sha256
from typing import Any, Dict
from urllib.parse import urlencode

import httpx

from fastapi import HTTPException, status
from pydantic import ValidationError

from ml_inventory.core.config import MercadoLivreSettings
from ml_inventory.models import TokenGrant


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects a grant."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotConnectedError(Exception):
    """Raised when no usable marketplace credentials are stored for a user."""


class SessionExpiredError(Exception):
    """Raised when credentials could not be renewed and must be re-authorized."""


class MercadoLivreOAuthClient:
    """Build authorization URLs and exchange codes or refresh tokens."""

    TOKEN_PATH = "/oauth/token"

    def __init__(
        self,
        settings: MercadoLivreSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._settings.api_base_url.rstrip('/')}{self.TOKEN_PATH}"

    def build_authorization_url(self, state: str) -> str:
        """Construct the marketplace consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "state": state,
        }
        query = urlencode(params)
        return f"{self._settings.auth_base_url.rstrip('/')}/authorization?{query}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        grant = await self._request_token(
            {
                "grant_type": "authorization_code",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "code": code,
                "redirect_uri": str(self._settings.redirect_uri),
            }
        )
        if grant.user_id is None:
            raise OAuthTokenExchangeError("Token payload is missing the account id.")
        return grant

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new token pair from a stored refresh token.

        Network failures propagate as ``httpx.HTTPError``; provider rejections
        raise ``OAuthTokenExchangeError``.
        """
        return await self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "refresh_token": refresh_token,
            }
        )

    async def _request_token(self, payload: Dict[str, str]) -> TokenGrant:
        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(
                self.token_url,
                data=payload,
                headers={"Accept": "application/json"},
            )

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                _error_message(response), status_code=response.status_code
            )

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError(
                "Malformed token payload returned by the marketplace.",
                status_code=response.status_code,
            ) from exc

        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError(
                "Malformed token payload returned by the marketplace.",
                status_code=response.status_code,
            )
        if not token_payload.get("access_token") or not token_payload.get("expires_in"):
            raise OAuthTokenExchangeError("Incomplete token payload returned by the marketplace.")

        try:
            return TokenGrant(**token_payload)
        except ValidationError as exc:
            raise OAuthTokenExchangeError(
                "Malformed token payload returned by the marketplace.",
                status_code=response.status_code,
            ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


__all__ = [
    "MercadoLivreOAuthClient",
    "NotConnectedError",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "SessionExpiredError",
]
