"""Pytest configuration shared across the suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from ml_inventory.clients.sqlite_store import SQLiteStore
from ml_inventory.core.config import get_settings
from ml_inventory.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "settings.db"))


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="test-secret")


@pytest.fixture
def seed_connection(store: SQLiteStore, cipher: TokenCipherService) -> Callable[..., None]:
    """Persist an encrypted marketplace connection for a user."""

    def _seed(
        user_id: str = "user-1",
        *,
        access_token: str = "old-access",
        refresh_token: Optional[str] = "old-refresh",
        expires_in: Optional[timedelta] = timedelta(hours=6),
        ml_user_id: str = "123456",
    ) -> None:
        expires_at = None
        if expires_in is not None:
            expires_at = (datetime.now(timezone.utc) + expires_in).isoformat()
        store.update_user_settings(
            user_id,
            {
                "ml_user_id": ml_user_id,
                "ml_access_token": cipher.encrypt(access_token),
                "ml_refresh_token": cipher.encrypt(refresh_token),
                "ml_token_expires_at": expires_at,
            },
        )

    return _seed
