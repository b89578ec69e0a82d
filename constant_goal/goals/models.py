"""
Goal and Response records

A Goal carries its scheduling state (active flag, next fire time) together
with the append-only log of Responses it has collected. Responses are
immutable; pausing a goal appends a SESSION_END marker instead of editing
anything that came before.

Serialized records written by older versions may lack the newer keys, so
from_dict fills in defaults rather than failing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any

from . import DEFAULT_SUCCESS_THRESHOLD


class Answer(StrEnum):
    """What a single log entry records."""

    YES = "yes"
    NO = "no"
    NONE = "none"  # notification opened without choosing Yes or No
    SESSION_END = "session_end"


# Older saved data spelled the marker in camelCase
_ANSWER_ALIASES = {"sessionEnd": Answer.SESSION_END}


def parse_answer(value: str | Answer) -> Answer:
    """Convert a stored or user-supplied answer string to an Answer."""
    if isinstance(value, Answer):
        return value
    if value in _ANSWER_ALIASES:
        return _ANSWER_ALIASES[value]
    return Answer(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def generate_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Response:
    """One entry in a goal's response log."""

    answer: Answer
    timestamp: datetime
    id: str = field(default_factory=generate_id)

    @property
    def is_session_end(self) -> bool:
        return self.answer == Answer.SESSION_END

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "answer": self.answer.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Response:
        return cls(
            answer=parse_answer(data["answer"]),
            timestamp=parse_timestamp(data["timestamp"]),
            id=data.get("id") or generate_id(),
        )


@dataclass
class Goal:
    """
    A recurring check-in habit.

    next_fire_at is set exactly when is_active is true. session_titles maps
    a session's chronological index (0 = oldest) to a user-chosen name.
    """

    title: str
    interval_minutes: int
    id: str = field(default_factory=generate_id)
    is_active: bool = False
    next_fire_at: datetime | None = None
    responses: list[Response] = field(default_factory=list)
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD
    session_titles: dict[int, str] = field(default_factory=dict)

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)

    def copy(self) -> Goal:
        """Snapshot safe to hand outside the store."""
        return Goal(
            title=self.title,
            interval_minutes=self.interval_minutes,
            id=self.id,
            is_active=self.is_active,
            next_fire_at=self.next_fire_at,
            responses=list(self.responses),
            success_threshold=self.success_threshold,
            session_titles=dict(self.session_titles),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "interval_minutes": self.interval_minutes,
            "is_active": self.is_active,
            "next_fire_at": self.next_fire_at.isoformat() if self.next_fire_at else None,
            "responses": [r.to_dict() for r in self.responses],
            "success_threshold": self.success_threshold,
            "session_titles": {str(k): v for k, v in sorted(self.session_titles.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Goal:
        """
        Decode a stored goal record.

        Raises:
            KeyError / ValueError / TypeError if a required field is missing
            or unreadable, ValueError if interval or threshold is out of range,
            OverflowError for non-finite numbers.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Goal record must be an object, got {type(data).__name__}")

        next_fire_at = data.get("next_fire_at")
        if next_fire_at is not None:
            next_fire_at = parse_timestamp(next_fire_at)

        is_active = bool(data.get("is_active", False))
        if not is_active:
            next_fire_at = None
        elif next_fire_at is None:
            # An active record with no fire time cannot be rescheduled faithfully
            is_active = False

        interval_minutes = int(data["interval_minutes"])
        if interval_minutes < 1:
            raise ValueError(f"interval_minutes must be at least 1, got {interval_minutes}")

        success_threshold = int(data.get("success_threshold", DEFAULT_SUCCESS_THRESHOLD))
        if not 0 <= success_threshold <= 100:
            raise ValueError(f"success_threshold must be 0-100, got {success_threshold}")

        titles = data.get("session_titles") or {}
        session_titles = {int(k): str(v) for k, v in titles.items() if v}

        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            interval_minutes=interval_minutes,
            is_active=is_active,
            next_fire_at=next_fire_at,
            responses=[Response.from_dict(r) for r in data.get("responses") or []],
            success_threshold=success_threshold,
            session_titles=session_titles,
        )
