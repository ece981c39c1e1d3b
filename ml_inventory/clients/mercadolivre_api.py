"""
Authenticated access to the Mercado Livre REST API.

``AuthenticatedApiClient`` attaches the bearer token and owns the single
refresh-and-retry cycle on 401/403. ``MercadoLivreClient`` layers the endpoints
the application consumes on top of it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, TYPE_CHECKING

import httpx

from ml_inventory.clients.mercadolivre_auth import (
    OAuthTokenExchangeError,
    SessionExpiredError,
)
from ml_inventory.core.config import MercadoLivreSettings
from ml_inventory.models import MarketplaceCredentials

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from ml_inventory.services.token_manager import TokenManager

logger = logging.getLogger(__name__)

_AUTH_FAILURES = (401, 403)


class ProviderError(Exception):
    """Non-authentication error returned by the marketplace."""

    def __init__(self, status_code: int, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ProviderError":
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        message = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
        return cls(
            response.status_code,
            str(message or f"Marketplace returned HTTP {response.status_code}"),
            payload,
        )


class NotFoundError(ProviderError):
    """A marketplace resource looked up by id does not exist."""


class AuthenticatedApiClient:
    """Issue bearer-authenticated requests with one bounded token renewal."""

    def __init__(
        self,
        token_manager: "TokenManager",
        settings: MercadoLivreSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tokens = token_manager
        self._settings = settings
        self._transport = transport

    async def call(
        self,
        url: str,
        credentials: MarketplaceCredentials,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        **options: Any,
    ) -> httpx.Response:
        """Send the request, renewing the token once if the marketplace rejects it.

        Any status other than 401/403 is returned untouched. ``credentials`` is
        updated in place after a successful renewal so follow-up calls in the
        same request reuse the new token.
        """
        target = self._resolve(url)
        response = await self._send(method, target, credentials.access_token, headers, options)
        if response.status_code not in _AUTH_FAILURES:
            return response

        user_id = credentials.user_id
        logger.warning(
            "HTTP %s from %s for user %s, attempting token refresh",
            response.status_code,
            target,
            user_id,
        )

        refresh_token = self._tokens.current_refresh_token(user_id)
        if not refresh_token:
            self._tokens.invalidate(user_id)
            raise SessionExpiredError(
                "Session expired. Reconnect your Mercado Livre account."
            )

        try:
            renewed = await self._tokens.refresh(credentials, refresh_token)
        except (OAuthTokenExchangeError, httpx.HTTPError) as exc:
            logger.error("Token refresh failed on retry for user %s: %s", user_id, exc)
            self._tokens.invalidate(user_id)
            raise SessionExpiredError(
                "Could not renew the session. Reconnect your Mercado Livre account."
            ) from exc

        credentials.access_token = renewed.access_token
        credentials.refresh_token = renewed.refresh_token
        credentials.expires_at = renewed.expires_at

        response = await self._send(method, target, renewed.access_token, headers, options)
        if response.status_code in _AUTH_FAILURES:
            self._tokens.invalidate(user_id)
            raise SessionExpiredError(
                "Token renewed but the marketplace still rejects it. "
                "Reconnect your Mercado Livre account."
            )
        return response

    def _resolve(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._settings.api_base_url.rstrip('/')}/{url.lstrip('/')}"

    async def _send(
        self,
        method: str,
        url: str,
        access_token: str,
        headers: Optional[Dict[str, str]],
        options: Dict[str, Any],
    ) -> httpx.Response:
        merged_headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {access_token}",
            **(headers or {}),
        }
        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
            transport=self._transport,
        ) as client:
            return await client.request(method, url, headers=merged_headers, **options)


class MercadoLivreClient:
    """Typed helpers for the marketplace endpoints used by the application."""

    def __init__(self, api_client: AuthenticatedApiClient, site_id: str) -> None:
        self._api = api_client
        self._site_id = site_id

    async def get_me(self, credentials: MarketplaceCredentials) -> Dict[str, Any]:
        return await self._get_json(credentials, "/users/me")

    async def get_item(self, credentials: MarketplaceCredentials, item_id: str) -> Dict[str, Any]:
        return await self._get_json(credentials, f"/items/{item_id}")

    async def list_items(
        self, credentials: MarketplaceCredentials, *, limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Return full listing details for the seller's items."""
        search = await self._get_json(
            credentials,
            f"/users/{credentials.ml_user_id}/items/search",
            params={"limit": limit},
        )
        item_ids = search.get("results") or []
        if not item_ids:
            return []

        batch = await self._get_json(
            credentials, "/items", params={"ids": ",".join(item_ids)}
        )
        return [
            entry["body"]
            for entry in batch
            if entry.get("code", 200) == 200 and entry.get("body")
        ]

    async def get_orders(
        self,
        credentials: MarketplaceCredentials,
        *,
        status: Literal["paid", "all"] = "paid",
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "seller": credentials.ml_user_id,
            "sort": "date_desc",
            "limit": limit,
        }
        if status == "paid":
            params["order.status"] = "paid"
        payload = await self._get_json(credentials, "/orders/search", params=params)
        return payload.get("results") or []

    async def get_questions(self, credentials: MarketplaceCredentials) -> List[Dict[str, Any]]:
        payload = await self._get_json(
            credentials,
            "/questions/search",
            params={
                "seller_id": credentials.ml_user_id,
                "status": "UNANSWERED",
                "sort_fields": "date_created",
                "sort_types": "DESC",
            },
        )
        return payload.get("questions") or []

    async def search(
        self, credentials: MarketplaceCredentials, query: str, *, limit: int = 50
    ) -> List[Dict[str, Any]]:
        payload = await self._get_json(
            credentials,
            f"/sites/{self._site_id}/search",
            params={"q": query, "limit": limit, "sort": "relevance"},
        )
        return payload.get("results") or []

    async def _get_json(
        self,
        credentials: MarketplaceCredentials,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        response = await self._api.call(path, credentials, params=params)
        if response.status_code == 404:
            raise NotFoundError.from_response(response)
        if not response.is_success:
            raise ProviderError.from_response(response)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                502,
                f"Marketplace returned a malformed response for {path}",
                response.text,
            ) from exc


__all__ = [
    "AuthenticatedApiClient",
    "MercadoLivreClient",
    "NotFoundError",
    "ProviderError",
]
