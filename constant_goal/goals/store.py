"""
Tool: Goal Store
Purpose: The only place the goal collection is mutated

Every mutating operation:
1. applies the state change in memory,
2. issues the external schedule/cancel call from that same state,
3. saves the whole collection through the repository,
4. tells subscribers that anything they display is stale.

Steps 1-3 run under one lock, so a trigger firing on a background thread
cannot interleave with a pause from the UI. Subscribers are called after
the lock is released.

Failures outside our control do not undo the user's intent: a scheduler
error or a failed save is logged, and the in-memory goal keeps the state
the user asked for.

Usage:
    store = GoalStore(repository, scheduler)
    store.load()
    result = store.add_goal("Sit up straight", interval_minutes=15)
    store.start_goal(result["data"]["goal"]["id"])

Output:
    Every operation returns a dict with success status and data or error
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from constant_goal.goals import (
    ALLOWED_INTERVALS,
    ANSWER_CHOICES,
    DEFAULT_INTERVAL_MINUTES,
    DEFAULT_SUCCESS_THRESHOLD,
)
from constant_goal.goals import scheduling
from constant_goal.goals.analyzer import (
    active_placeholder,
    build_session_summaries,
    session_detail,
)
from constant_goal.goals.models import Answer, Goal, parse_answer, utcnow
from constant_goal.goals.sessions import partition_sessions
from constant_goal.logging_config import get_logger, goal_context
from constant_goal.notify.base import TriggerRequest, TriggerScheduler
from constant_goal.storage.base import GoalRepository, RepositoryError

logger = get_logger(__name__)

Observer = Callable[[], None]


def _goal_operation(method):
    """Run a store method with its goal_id bound to the log context."""

    @functools.wraps(method)
    def wrapper(self, goal_id, *args, **kwargs):
        with goal_context(goal_id, method.__name__):
            return method(self, goal_id, *args, **kwargs)

    return wrapper


class GoalStore:
    """
    Owns the goal collection and serializes every change to it.

    Args:
        repository: Where the full collection is saved after each change
        scheduler: Notification backend for repeating check-in triggers
        clock: Source of "now" (injectable for tests)
        allowed_intervals: Minutes a goal may be created or edited with
        notification_body: Text shown in every check-in notification
        notification_category: Category carrying the Yes/No actions
        min_trigger_seconds: Shortest repeating trigger to request
        default_interval_minutes: Interval used when add_goal gets none
        default_success_threshold: Threshold used when add_goal gets none
    """

    def __init__(
        self,
        repository: GoalRepository,
        scheduler: TriggerScheduler,
        clock: Callable[[], datetime] = utcnow,
        allowed_intervals: tuple[int, ...] | list[int] = ALLOWED_INTERVALS,
        notification_body: str = "Time to check in on this goal.",
        notification_category: str = "YES_NO_CATEGORY",
        min_trigger_seconds: int = 60,
        default_interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        default_success_threshold: int = DEFAULT_SUCCESS_THRESHOLD,
    ):
        self._repository = repository
        self._scheduler = scheduler
        self._clock = clock
        self.allowed_intervals = tuple(allowed_intervals)
        self.notification_body = notification_body
        self.notification_category = notification_category
        self.min_trigger_seconds = min_trigger_seconds
        self.default_interval_minutes = default_interval_minutes
        self.default_success_threshold = default_success_threshold

        self._goals: list[Goal] = []
        self._observers: list[Observer] = []
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Observer) -> None:
        with self._lock:
            if callback not in self._observers:
                self._observers.append(callback)

    def unsubscribe(self, callback: Observer) -> None:
        with self._lock:
            if callback in self._observers:
                self._observers.remove(callback)

    def _notify(self) -> None:
        """Call observers. Must NOT hold _lock; callbacks may read the store."""
        with self._lock:
            observers = list(self._observers)
        for callback in observers:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Goal observer {callback!r} failed: {e}")

    # -------------------------------------------------------------------------
    # Internals (callers must hold _lock)
    # -------------------------------------------------------------------------

    def _find(self, goal_id: str) -> Goal | None:
        for goal in self._goals:
            if goal.id == goal_id:
                return goal
        return None

    def _not_found(self, goal_id: str, operation: str) -> dict[str, Any]:
        logger.warning(f"{operation}: no goal with id {goal_id}")
        return {"success": False, "error": f"Goal not found: {goal_id}"}

    def _persist(self) -> bool:
        try:
            self._repository.save([goal.copy() for goal in self._goals])
            return True
        except (RepositoryError, OSError) as e:
            logger.warning(f"Failed to save goals, keeping in-memory state: {e}")
            return False

    def _schedule(self, goal: Goal) -> None:
        request = TriggerRequest.for_goal(
            goal,
            body=self.notification_body,
            category=self.notification_category,
            min_trigger_seconds=self.min_trigger_seconds,
        )
        try:
            self._scheduler.schedule(request)
            logger.info(f"Scheduled check-ins for '{goal.title}' every {request.interval_seconds}s")
        except Exception as e:
            logger.warning(f"Scheduling failed, goal stays {scheduling.state_of(goal)}: {e}")

    def _cancel(self, goal: Goal) -> None:
        try:
            self._scheduler.cancel(goal.id)
        except Exception as e:
            logger.warning(f"Cancelling trigger failed: {e}")

    def _validate_title(self, title: str | None) -> str | None:
        if title is None or not title.strip():
            return "Title must not be empty"
        return None

    def _validate_interval(self, interval_minutes: int) -> str | None:
        if interval_minutes not in self.allowed_intervals:
            return f"Invalid interval. Must be one of: {self.allowed_intervals}"
        return None

    def _validate_threshold(self, success_threshold: int) -> str | None:
        if not 0 <= success_threshold <= 100:
            return "Success threshold must be between 0 and 100"
        return None

    def _changed(self, goal: Goal, message: str, **extra: Any) -> dict[str, Any]:
        """Persist after a mutation and build the result. Must hold _lock."""
        persisted = self._persist()
        data = {"goal": goal.to_dict(), "persisted": persisted}
        data.update(extra)
        return {"success": True, "data": data, "message": message}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """Replace the in-memory collection with the stored one."""
        goals = self._repository.load()
        with self._lock:
            self._goals = goals
        self._notify()
        logger.info(f"Loaded {len(goals)} goals")
        return {"success": True, "data": {"count": len(goals)}}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> list[Goal]:
        """Copies of every goal, in creation order."""
        with self._lock:
            return [goal.copy() for goal in self._goals]

    def list_goals(self) -> dict[str, Any]:
        with self._lock:
            goals = [goal.to_dict() for goal in self._goals]
        return {"success": True, "data": {"goals": goals, "total": len(goals)}}

    @_goal_operation
    def get_goal(self, goal_id: str) -> dict[str, Any]:
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "get_goal")
            return {"success": True, "data": goal.to_dict()}

    @_goal_operation
    def list_sessions(self, goal_id: str, newest_first: bool = True) -> dict[str, Any]:
        """
        Session summaries for a goal, recomputed from its response log.

        Includes a placeholder for an active goal with no sessions yet.
        """
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "list_sessions")
            goal = goal.copy()

        summaries = build_session_summaries(goal, newest_first=newest_first)
        placeholder = active_placeholder(goal)
        return {
            "success": True,
            "data": {
                "goal_id": goal.id,
                "sessions": [s.to_dict() for s in summaries],
                "total": len(summaries),
                "placeholder": placeholder.to_dict() if placeholder else None,
            },
        }

    @_goal_operation
    def get_session(self, goal_id: str, index: int) -> dict[str, Any]:
        """Summary and timeline of one session by chronological index."""
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "get_session")
            goal = goal.copy()

        detail = session_detail(goal, index)
        if detail is None:
            return {"success": False, "error": f"Session not found: {index}"}
        return {"success": True, "data": detail.to_dict()}

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_goal(
        self,
        title: str,
        interval_minutes: int | None = None,
        success_threshold: int | None = None,
    ) -> dict[str, Any]:
        """
        Create a new, inactive goal.

        Args:
            title: Display title (must not be blank)
            interval_minutes: One of the allowed intervals
            success_threshold: Yes percentage (0-100) counted as success

        Returns:
            dict with the created goal
        """
        if interval_minutes is None:
            interval_minutes = self.default_interval_minutes
        if success_threshold is None:
            success_threshold = self.default_success_threshold

        error = (
            self._validate_title(title)
            or self._validate_interval(interval_minutes)
            or self._validate_threshold(success_threshold)
        )
        if error:
            return {"success": False, "error": error}

        goal = Goal(
            title=title.strip(),
            interval_minutes=interval_minutes,
            success_threshold=success_threshold,
        )
        with goal_context(goal.id, "add_goal"), self._lock:
            self._goals.append(goal)
            logger.info(f"Created goal '{goal.title}' every {goal.interval_minutes} min")
            result = self._changed(goal, f"Goal created with ID {goal.id}")
        self._notify()
        return result

    @_goal_operation
    def update_goal(
        self,
        goal_id: str,
        title: str | None = None,
        interval_minutes: int | None = None,
        success_threshold: int | None = None,
    ) -> dict[str, Any]:
        """
        Edit a goal. An active goal restarts its cadence from now.
        """
        if title is not None and (error := self._validate_title(title)):
            return {"success": False, "error": error}
        if interval_minutes is not None and (error := self._validate_interval(interval_minutes)):
            return {"success": False, "error": error}
        if success_threshold is not None and (error := self._validate_threshold(success_threshold)):
            return {"success": False, "error": error}
        if title is None and interval_minutes is None and success_threshold is None:
            return {"success": False, "error": "No fields to update"}

        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "update_goal")

            reschedule = scheduling.apply_edit(
                goal,
                self._clock(),
                title=title.strip() if title is not None else None,
                interval_minutes=interval_minutes,
                success_threshold=success_threshold,
            )
            if reschedule:
                self._cancel(goal)
                self._schedule(goal)
            result = self._changed(goal, f"Goal {goal_id} updated", rescheduled=reschedule)
        self._notify()
        return result

    @_goal_operation
    def start_goal(self, goal_id: str) -> dict[str, Any]:
        """Start or resume check-ins for a goal."""
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "start_goal")

            if not scheduling.start(goal, self._clock()):
                return {"success": False, "error": f"Goal {goal_id} is already active"}

            logger.info(f"Starting goal '{goal.title}', next fire at {goal.next_fire_at.isoformat()}")
            self._schedule(goal)
            result = self._changed(goal, f"Goal {goal_id} started")
        self._notify()
        return result

    @_goal_operation
    def pause_goal(self, goal_id: str) -> dict[str, Any]:
        """Pause a goal, closing its current session."""
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "pause_goal")

            marker = scheduling.pause(goal, self._clock())
            if marker is None:
                return {"success": False, "error": f"Goal {goal_id} is not active"}

            logger.info(f"Pausing goal '{goal.title}', session closed at {marker.timestamp.isoformat()}")
            self._cancel(goal)
            result = self._changed(goal, f"Goal {goal_id} paused")
        self._notify()
        return result

    @_goal_operation
    def toggle_goal(self, goal_id: str) -> dict[str, Any]:
        """Pause an active goal or start an inactive one."""
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "toggle_goal")
            active = goal.is_active

        # Another caller may win the race here; the transition then reports it
        return self.pause_goal(goal_id) if active else self.start_goal(goal_id)

    @_goal_operation
    def delete_goal(self, goal_id: str) -> dict[str, Any]:
        """Cancel a goal's trigger and remove it with its whole history."""
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "delete_goal")

            self._cancel(goal)
            self._goals.remove(goal)
            persisted = self._persist()
        self._notify()
        return {
            "success": True,
            "data": {"goal_id": goal_id, "persisted": persisted},
            "message": f"Goal {goal_id} deleted",
        }

    @_goal_operation
    def handle_notification_fired(self, goal_id: str) -> dict[str, Any]:
        """
        Advance next_fire_at after the goal's trigger went off.

        A signal for a goal that is paused or gone is ignored.
        """
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "handle_notification_fired")

            if not scheduling.advance_on_fire(goal, self._clock()):
                logger.warning("Ignoring fired signal for paused goal")
                return {"success": False, "error": f"Goal {goal_id} is not active"}

            logger.info(f"Next fire for '{goal.title}' is {goal.next_fire_at.isoformat()}")
            result = self._changed(goal, f"Goal {goal_id} advanced")
        self._notify()
        return result

    @_goal_operation
    def record_response(
        self,
        goal_id: str,
        answer: str | Answer,
        timestamp: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Append an answer to a goal's log. Works for paused goals too, so a
        late tap on an old notification still counts.
        """
        try:
            parsed = parse_answer(answer)
        except ValueError:
            return {"success": False, "error": f"Invalid answer. Must be one of: {ANSWER_CHOICES}"}
        if parsed == Answer.SESSION_END:
            return {"success": False, "error": f"Invalid answer. Must be one of: {ANSWER_CHOICES}"}

        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "record_response")

            response = scheduling.record_answer(goal, parsed, timestamp or self._clock())
            logger.info(f"Recorded '{response.answer}' for '{goal.title}' ({len(goal.responses)} total)")
            result = self._changed(goal, "Response recorded", response=response.to_dict())
        self._notify()
        return result

    @_goal_operation
    def set_session_title(self, goal_id: str, index: int, title: str | None) -> dict[str, Any]:
        """
        Name a session, or clear its name with None or a blank title.

        Sessions are addressed by chronological index (0 = oldest).
        """
        with self._lock:
            goal = self._find(goal_id)
            if goal is None:
                return self._not_found(goal_id, "set_session_title")

            if not 0 <= index < len(partition_sessions(goal.responses)):
                return {"success": False, "error": f"Session not found: {index}"}

            if title is None or not title.strip():
                goal.session_titles.pop(index, None)
            else:
                goal.session_titles[index] = title.strip()
            result = self._changed(goal, f"Session {index + 1} renamed")
        self._notify()
        return result
