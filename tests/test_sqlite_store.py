try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from ml_inventory.clients.sqlite_store import SQLiteStore


def test_unknown_user_has_no_settings(store: SQLiteStore) -> None:
    assert store.get_user_settings("missing") is None


def test_update_creates_then_merges_row(store: SQLiteStore) -> None:
    store.update_user_settings("user-1", {"fee_classic_percent": 12.0})
    store.update_user_settings("user-1", {"ml_user_id": "555", "ml_nickname": "LOJA"})

    row = store.get_user_settings("user-1")
    assert row["fee_classic_percent"] == 12.0
    assert row["ml_user_id"] == "555"
    assert row["ml_nickname"] == "LOJA"
    assert row["created_at"] <= row["updated_at"]


def test_token_triple_is_written_together(store: SQLiteStore) -> None:
    store.update_user_settings(
        "user-1",
        {
            "ml_access_token": "a1",
            "ml_refresh_token": "r1",
            "ml_token_expires_at": "2030-01-01T00:00:00+00:00",
        },
    )
    store.update_user_settings(
        "user-1",
        {
            "ml_access_token": "a2",
            "ml_refresh_token": "r2",
            "ml_token_expires_at": "2030-01-02T00:00:00+00:00",
        },
    )

    row = store.get_user_settings("user-1")
    assert (row["ml_access_token"], row["ml_refresh_token"]) == ("a2", "r2")
    assert row["ml_token_expires_at"] == "2030-01-02T00:00:00+00:00"


def test_clear_nulls_only_requested_columns(store: SQLiteStore) -> None:
    store.update_user_settings("user-1", {"ml_access_token": "a", "monthly_goal": 1000.0})

    store.clear_user_settings("user-1", ["ml_access_token"])

    row = store.get_user_settings("user-1")
    assert row["ml_access_token"] is None
    assert row["monthly_goal"] == 1000.0


def test_rejects_unknown_columns(store: SQLiteStore) -> None:
    with pytest.raises(ValueError):
        store.update_user_settings("user-1", {"user_id": "other"})


def test_rows_survive_reopening(tmp_path) -> None:
    path = tmp_path / "nested" / "settings.db"
    SQLiteStore(str(path)).update_user_settings("user-1", {"daily_goal": 50.0})

    assert SQLiteStore(str(path)).get_user_settings("user-1")["daily_goal"] == 50.0
