"""
Goal Repository Base Classes

All repositories store the full goal list under a single key and replace it
on every save. Loading never blocks startup: a missing value is an empty
list, and so is a value that cannot be decoded (with a warning).
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

from constant_goal.goals.models import Goal
from constant_goal.logging_config import get_logger

logger = get_logger(__name__)


class RepositoryError(Exception):
    """Raised when a goal collection cannot be written."""


def encode_goals(goals: list[Goal]) -> str:
    return json.dumps([goal.to_dict() for goal in goals], ensure_ascii=False)


def decode_goals(raw: str | bytes | None) -> list[Goal]:
    """
    Decode a stored goal collection.

    Returns:
        The goals, or an empty list if raw is missing or malformed
    """
    if raw is None:
        return []
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not raw.strip():
        return []

    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise TypeError(f"Expected a list of goals, got {type(data).__name__}")
        return [Goal.from_dict(item) for item in data]
    except (ValueError, TypeError, KeyError, AttributeError, OverflowError) as e:
        logger.warning(f"Stored goals are unreadable, starting empty: {e}")
        return []


class GoalRepository(ABC):
    """Whole-collection goal storage."""

    @abstractmethod
    def load(self) -> list[Goal]:
        """Return the stored goals; never raises for missing or bad data."""

    @abstractmethod
    def save(self, goals: list[Goal]) -> None:
        """
        Replace the stored goals.

        Raises:
            RepositoryError: if the collection could not be written
        """


class InMemoryGoalRepository(GoalRepository):
    """
    Holds the serialized collection in a string.

    Goes through the same JSON codec as the SQLite repository so tests see
    the same round-trip behavior.
    """

    def __init__(self, raw: str | None = None):
        self.raw = raw
        self.save_count = 0

    def load(self) -> list[Goal]:
        return decode_goals(self.raw)

    def save(self, goals: list[Goal]) -> None:
        try:
            self.raw = encode_goals(goals)
        except (TypeError, ValueError) as e:
            raise RepositoryError(f"Could not encode goals: {e}") from e
        self.save_count += 1
