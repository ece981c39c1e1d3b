"""
Lifecycle management for persisted Mercado Livre OAuth credentials.

``TokenManager`` always hands back the best bearer token available for a user:
it refreshes silently shortly before expiry, persists the rotated token pair,
and only clears credentials when told a failure is confirmed.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from ml_inventory.clients.mercadolivre_auth import (
    MercadoLivreOAuthClient,
    NotConnectedError,
    OAuthTokenExchangeError,
)
from ml_inventory.clients.sqlite_store import SQLiteStore
from ml_inventory.core.config import OAuthSettings
from ml_inventory.models import MarketplaceCredentials, TokenGrant
from ml_inventory.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_TOKEN_COLUMNS = ("ml_access_token", "ml_refresh_token", "ml_token_expires_at")


class TokenManager:
    """Reads, refreshes, persists and invalidates marketplace credentials."""

    def __init__(
        self,
        store: SQLiteStore,
        oauth_client: MercadoLivreOAuthClient,
        oauth_settings: OAuthSettings,
        token_cipher: TokenCipherService,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._refresh_buffer = timedelta(seconds=oauth_settings.refresh_buffer_seconds)
        self._cipher = token_cipher
        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def get_valid_credentials(self, user_id: str) -> MarketplaceCredentials:
        """Return usable credentials, refreshing them first when close to expiry.

        Raises ``NotConnectedError`` when the user has no access token or no
        remote account id on file. A failed refresh is logged and the current
        token is returned; the authenticated call will surface a real failure.
        """
        credentials = self._load(user_id)
        if not self._needs_refresh(credentials):
            return credentials

        if not credentials.refresh_token:
            logger.warning(
                "Refresh needed for user %s but no refresh token is stored; "
                "using current access token",
                user_id,
            )
            return credentials

        async with self._lock_for(user_id):
            # Another request may have renewed the token while we waited.
            current = self._load(user_id)
            if not self._needs_refresh(current) or not current.refresh_token:
                return current

            logger.info("Silent refresh for user %s", user_id)
            try:
                return await self._refresh_unlocked(current, current.refresh_token)
            except (OAuthTokenExchangeError, httpx.HTTPError) as exc:
                logger.warning(
                    "Silent refresh failed for user %s, keeping current token: %s",
                    user_id,
                    exc,
                )
                return current

    async def refresh(
        self, credentials: MarketplaceCredentials, refresh_token: str
    ) -> MarketplaceCredentials:
        """Exchange ``refresh_token`` and persist the new token triple.

        Unlike the silent path, failures propagate to the caller.
        """
        async with self._lock_for(credentials.user_id):
            return await self._refresh_unlocked(credentials, refresh_token)

    def current_refresh_token(self, user_id: str) -> Optional[str]:
        """Re-read the stored refresh token; it may have rotated since load."""
        row = self._store.get_user_settings(user_id)
        if not row:
            return None
        return self._cipher.decrypt(row.get("ml_refresh_token"))

    def invalidate(self, user_id: str) -> None:
        """Clear the token triple after a confirmed authentication failure."""
        logger.warning("Invalidating marketplace tokens for user %s", user_id)
        self._store.clear_user_settings(user_id, _TOKEN_COLUMNS)

    async def connect(self, user_id: str, code: str) -> MarketplaceCredentials:
        """Complete the authorization-code flow and store the new connection."""
        grant = await self._oauth.exchange_authorization_code(code)
        ml_user_id = str(grant.user_id)
        expires_at = _expiry_from(grant)
        self._store.update_user_settings(
            user_id,
            {
                "ml_user_id": ml_user_id,
                "ml_access_token": self._cipher.encrypt(grant.access_token),
                "ml_refresh_token": self._cipher.encrypt(grant.refresh_token),
                "ml_token_expires_at": expires_at.isoformat(),
            },
        )
        logger.info("Connected user %s to marketplace account %s", user_id, ml_user_id)
        return MarketplaceCredentials(
            user_id=user_id,
            ml_user_id=ml_user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=expires_at,
        )

    def disconnect(self, user_id: str) -> None:
        """Forget the marketplace connection at the user's request."""
        logger.info("Disconnecting marketplace account for user %s", user_id)
        self._store.clear_user_settings(
            user_id, (*_TOKEN_COLUMNS, "ml_user_id", "ml_nickname")
        )

    async def _refresh_unlocked(
        self, credentials: MarketplaceCredentials, refresh_token: str
    ) -> MarketplaceCredentials:
        grant = await self._oauth.refresh_token(refresh_token)
        # Refresh tokens rotate: the previous value is dead once this succeeds.
        new_refresh_token = grant.refresh_token or refresh_token
        expires_at = _expiry_from(grant)
        self._store.update_user_settings(
            credentials.user_id,
            {
                "ml_access_token": self._cipher.encrypt(grant.access_token),
                "ml_refresh_token": self._cipher.encrypt(new_refresh_token),
                "ml_token_expires_at": expires_at.isoformat(),
            },
        )
        logger.info("Token renewed for user %s", credentials.user_id)
        return credentials.model_copy(
            update={
                "access_token": grant.access_token,
                "refresh_token": new_refresh_token,
                "expires_at": expires_at,
            }
        )

    def _load(self, user_id: str) -> MarketplaceCredentials:
        row = self._store.get_user_settings(user_id)
        if not row or not row.get("ml_access_token") or not row.get("ml_user_id"):
            raise NotConnectedError(
                "Mercado Livre account not connected. Connect it in settings."
            )

        return MarketplaceCredentials(
            user_id=user_id,
            ml_user_id=row["ml_user_id"],
            access_token=self._cipher.decrypt(row["ml_access_token"]),
            refresh_token=self._cipher.decrypt(row.get("ml_refresh_token")),
            expires_at=_parse_timestamp(row.get("ml_token_expires_at")),
        )

    def _needs_refresh(self, credentials: MarketplaceCredentials) -> bool:
        # A missing expiry is not evidence of expiry; let a 401 decide.
        if credentials.expires_at is None:
            return False
        now = datetime.now(timezone.utc)
        return now >= credentials.expires_at - self._refresh_buffer

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock


def _expiry_from(grant: TokenGrant) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["TokenManager"]
