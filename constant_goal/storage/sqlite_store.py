"""
SQLite goal repository

Stores the serialized goal list as one row of a small key-value table, the
local equivalent of a preferences store:

    kv_store(key TEXT PRIMARY KEY, value TEXT, updated_at DATETIME)

Dependencies:
    - sqlite3 (stdlib)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from constant_goal import DB_PATH
from constant_goal.goals.models import Goal
from constant_goal.logging_config import get_logger
from constant_goal.storage.base import GoalRepository, RepositoryError, decode_goals, encode_goals

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "savedGoals"


class SQLiteGoalRepository(GoalRepository):
    def __init__(self, db_path: Path | str | None = None, storage_key: str = DEFAULT_STORAGE_KEY):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self.storage_key = storage_key

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row

        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        return conn

    def load(self) -> list[Goal]:
        try:
            conn = self.get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM kv_store WHERE key = ?", (self.storage_key,))
                row = cursor.fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Could not read goals from {self.db_path}: {e}")
            return []

        if row is None:
            return []
        return decode_goals(row["value"])

    def save(self, goals: list[Goal]) -> None:
        payload = encode_goals(goals)
        try:
            conn = self.get_connection()
            try:
                conn.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """, (self.storage_key, payload, datetime.now().isoformat()))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise RepositoryError(f"Could not write goals to {self.db_path}: {e}") from e
