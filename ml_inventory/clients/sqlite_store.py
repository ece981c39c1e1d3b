"""SQLite-backed store for the per-user settings row.

Each user owns exactly one row holding the marketplace connection (token
triple, remote account id) alongside business settings such as fee overrides.
Writes go through a single ``UPDATE``/``INSERT`` statement so the access and
refresh tokens can never be persisted out of step with each other.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

_COLUMNS = (
    "ml_user_id",
    "ml_nickname",
    "ml_access_token",
    "ml_refresh_token",
    "ml_token_expires_at",
    "fee_classic_percent",
    "fee_premium_percent",
    "fixed_fee_threshold",
    "fixed_fee_amount",
    "daily_goal",
    "monthly_goal",
)


class SQLiteStore:
    """Single-row-per-user settings table keyed by ``user_id``."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_settings (
                    user_id TEXT PRIMARY KEY,
                    ml_user_id TEXT,
                    ml_nickname TEXT,
                    ml_access_token TEXT,
                    ml_refresh_token TEXT,
                    ml_token_expires_at TEXT,
                    fee_classic_percent REAL,
                    fee_premium_percent REAL,
                    fixed_fee_threshold REAL,
                    fixed_fee_amount REAL,
                    daily_goal REAL,
                    monthly_goal REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get_user_settings(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_settings WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def update_user_settings(self, user_id: str, values: Dict[str, Any]) -> None:
        """Upsert ``values`` for the user in one statement.

        Only known columns are accepted; unknown keys raise ``ValueError``.
        """
        unknown = set(values) - set(_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown settings columns: {', '.join(sorted(unknown))}")
        if not user_id:
            raise ValueError("user_id is required")

        columns = [column for column in _COLUMNS if column in values]
        now = datetime.now(timezone.utc).isoformat()
        insert_columns = ["user_id", *columns, "created_at", "updated_at"]
        column_list = ", ".join(insert_columns)
        placeholders = ", ".join("?" for _ in insert_columns)
        assignments = ", ".join(
            f"{column} = excluded.{column}" for column in [*columns, "updated_at"]
        )
        params = [user_id, *(values[column] for column in columns), now, now]

        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO user_settings ({column_list})
                VALUES ({placeholders})
                ON CONFLICT(user_id) DO UPDATE SET {assignments}
                """,
                params,
            )

    def clear_user_settings(self, user_id: str, columns: Iterable[str]) -> None:
        """Null out ``columns`` for the user."""
        self.update_user_settings(user_id, {column: None for column in columns})


__all__ = ["SQLiteStore"]
