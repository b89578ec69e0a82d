"""Goal persistence

Goals are saved and loaded as one serialized collection. There are no
incremental writes: every mutation replaces the stored value.

    base.py: GoalRepository contract, JSON codec, in-memory repository
    sqlite_store.py: Key-value table in a local SQLite database
"""

from constant_goal.storage.base import (
    GoalRepository,
    InMemoryGoalRepository,
    RepositoryError,
    decode_goals,
    encode_goals,
)
from constant_goal.storage.sqlite_store import SQLiteGoalRepository

__all__ = [
    "GoalRepository",
    "InMemoryGoalRepository",
    "RepositoryError",
    "SQLiteGoalRepository",
    "decode_goals",
    "encode_goals",
]
