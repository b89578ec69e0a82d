"""
Signal Dispatcher

Entry point for callbacks from the notification backend:

    fired(payload)                       a goal's trigger went off
    answered(payload, action_identifier) the user tapped Yes, No, or the
                                         notification itself

The dispatcher only holds a weak reference to the GoalStore. The store
registers itself when it is built; a signal that arrives before that (or
after the store is gone) is dropped, which is a normal startup race.

Usage:
    dispatcher = SignalDispatcher()
    dispatcher.register(store)
    dispatcher.answered({"goal_id": goal_id}, "YES_ACTION")
"""

from __future__ import annotations

import uuid
import weakref
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from constant_goal.goals.models import Answer, utcnow
from constant_goal.logging_config import get_logger

if TYPE_CHECKING:
    from constant_goal.goals.store import GoalStore

logger = get_logger(__name__)


class SignalDispatcher:
    """Routes notification signals to whichever store is currently live."""

    def __init__(
        self,
        yes_action: str = "YES_ACTION",
        no_action: str = "NO_ACTION",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.yes_action = yes_action
        self.no_action = no_action
        self._clock = clock
        self._store_ref: weakref.ref[GoalStore] | None = None

    def register(self, store: GoalStore) -> None:
        self._store_ref = weakref.ref(store)

    def unregister(self) -> None:
        self._store_ref = None

    @property
    def store(self) -> GoalStore | None:
        if self._store_ref is None:
            return None
        return self._store_ref()

    def answer_for_action(self, action_identifier: str | None) -> Answer:
        """Map a notification action to an answer; a plain tap counts as NONE."""
        if action_identifier == self.yes_action:
            return Answer.YES
        if action_identifier == self.no_action:
            return Answer.NO
        return Answer.NONE

    @staticmethod
    def goal_id_from(payload: Mapping[str, Any] | None) -> str | None:
        if not payload:
            return None
        raw = payload.get("goal_id")
        if not isinstance(raw, str):
            return None
        try:
            return str(uuid.UUID(raw))
        except ValueError:
            return None

    def fired(self, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        goal_id = self.goal_id_from(payload)
        if goal_id is None:
            logger.warning(f"Dropping fired signal with unusable payload: {payload!r}")
            return {"success": False, "error": "Payload has no valid goal_id"}

        store = self.store
        if store is None:
            logger.debug(f"No live store, dropping fired signal for {goal_id}")
            return {"success": False, "error": "No store registered"}

        return store.handle_notification_fired(goal_id)

    def answered(
        self,
        payload: Mapping[str, Any] | None,
        action_identifier: str | None,
        timestamp: datetime | None = None,
    ) -> dict[str, Any]:
        goal_id = self.goal_id_from(payload)
        if goal_id is None:
            logger.warning(f"Dropping answer with unusable payload: {payload!r}")
            return {"success": False, "error": "Payload has no valid goal_id"}

        store = self.store
        if store is None:
            logger.debug(f"No live store, dropping answer for {goal_id}")
            return {"success": False, "error": "No store registered"}

        answer = self.answer_for_action(action_identifier)
        return store.record_response(goal_id, answer, timestamp or self._clock())
