"""
Trigger Scheduler boundary

The goal engine never talks to a notification center directly. It hands a
TriggerRequest to a TriggerScheduler and later receives "fired" and
"answered" signals through the SignalDispatcher.

Design Principles:
- One pending repeating trigger per goal, identified by the goal id
- cancel() is idempotent and safe for ids that were never scheduled
- Scheduling is fire-and-forget: the store logs failures and moves on
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from constant_goal.goals.models import Goal, utcnow
from constant_goal.goals.scheduling import trigger_seconds


@dataclass(frozen=True)
class TriggerRequest:
    """A repeating local notification for one goal."""

    goal_id: str
    title: str
    interval_seconds: int
    body: str = "Time to check in on this goal."
    category: str = "YES_NO_CATEGORY"
    repeating: bool = True
    payload: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_goal(
        cls,
        goal: Goal,
        body: str = "Time to check in on this goal.",
        category: str = "YES_NO_CATEGORY",
        min_trigger_seconds: int = 60,
    ) -> TriggerRequest:
        return cls(
            goal_id=goal.id,
            title=goal.title,
            interval_seconds=trigger_seconds(goal.interval_minutes, min_trigger_seconds),
            body=body,
            category=category,
            payload={"goal_id": goal.id},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "title": self.title,
            "interval_seconds": self.interval_seconds,
            "body": self.body,
            "category": self.category,
            "repeating": self.repeating,
            "payload": dict(self.payload),
        }


class TriggerScheduler(ABC):
    """What the goal engine needs from a notification backend."""

    @abstractmethod
    def schedule(self, request: TriggerRequest) -> None:
        """Register (or replace) the repeating trigger for request.goal_id."""

    @abstractmethod
    def cancel(self, goal_id: str) -> None:
        """Remove any pending trigger for a goal. Must not fail if none exists."""


@dataclass
class PendingTrigger:
    request: TriggerRequest
    scheduled_at: datetime


class InMemoryTriggerScheduler(TriggerScheduler):
    """
    Keeps pending triggers in a dict.

    Used for local runs without a notification center and as the test
    double for the store. Nothing is ever delivered; callers inspect
    `pending` or feed signals to the dispatcher themselves.
    """

    def __init__(self):
        self._pending: dict[str, PendingTrigger] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> dict[str, TriggerRequest]:
        with self._lock:
            return {goal_id: p.request for goal_id, p in self._pending.items()}

    def is_scheduled(self, goal_id: str) -> bool:
        with self._lock:
            return goal_id in self._pending

    def schedule(self, request: TriggerRequest) -> None:
        with self._lock:
            self._pending[request.goal_id] = PendingTrigger(request=request, scheduled_at=utcnow())

    def cancel(self, goal_id: str) -> None:
        with self._lock:
            self._pending.pop(goal_id, None)
