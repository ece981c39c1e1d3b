try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from ml_inventory.services.token_cipher import TokenCipherService


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")

    encrypted = cipher.encrypt("APP_USR-123456-access")

    assert encrypted != "APP_USR-123456-access"
    assert cipher.decrypt(encrypted) == "APP_USR-123456-access"


def test_token_cipher_passes_none_through() -> None:
    cipher = TokenCipherService(secret="super-secret-key")

    assert cipher.encrypt(None) is None
    assert cipher.decrypt(None) is None


def test_token_cipher_rejects_foreign_ciphertext() -> None:
    encrypted = TokenCipherService(secret="one-secret").encrypt("token")

    with pytest.raises(ValueError):
        TokenCipherService(secret="another-secret").decrypt(encrypted)


def test_token_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")
