"""
Goal scheduling transitions

A goal is either Inactive (no pending trigger, no next fire time) or
Active (trigger pending, next fire time set). The functions here apply one
transition to a Goal in place and report whether anything changed; the
store decides what to persist and which external trigger calls to make.

    start   Inactive -> Active   next fire = now + interval
    pause   Active -> Inactive   append SESSION_END, clear next fire
    fire    Active -> Active     next fire = (next fire or now) + interval
    edit    Active -> Active     next fire = now + new interval

Every path that sets is_active also sets next_fire_at in the same step, and
every path that clears one clears the other.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from .models import Answer, Goal, Response, parse_answer, parse_timestamp


class GoalState(StrEnum):
    INACTIVE = "inactive"
    ACTIVE = "active"


def state_of(goal: Goal) -> GoalState:
    return GoalState.ACTIVE if goal.is_active else GoalState.INACTIVE


def is_consistent(goal: Goal) -> bool:
    """True when the active flag and next fire time agree."""
    return goal.is_active == (goal.next_fire_at is not None)


def trigger_seconds(interval_minutes: int, min_seconds: int = 60) -> int:
    """Repeating trigger period; OS schedulers refuse very short repeats."""
    return max(interval_minutes * 60, min_seconds)


def start(goal: Goal, now: datetime) -> bool:
    """Start or resume a goal. Returns False if it was already active."""
    if goal.is_active:
        return False
    goal.is_active = True
    goal.next_fire_at = now + goal.interval
    return True


def pause(goal: Goal, now: datetime) -> Response | None:
    """
    Pause a goal, closing its current session.

    The SESSION_END marker is appended even if nothing was answered since
    the last start; partitioning treats such a marker as a no-op.

    Returns:
        The appended marker, or None if the goal was not active
    """
    if not goal.is_active:
        return None
    marker = Response(answer=Answer.SESSION_END, timestamp=now)
    goal.responses.append(marker)
    goal.is_active = False
    goal.next_fire_at = None
    return marker


def advance_on_fire(goal: Goal, now: datetime) -> bool:
    """
    Move next_fire_at forward one interval after a trigger fired.

    A late signal for a goal that has since been paused changes nothing.
    """
    if not goal.is_active:
        return False
    base = goal.next_fire_at or now
    goal.next_fire_at = base + goal.interval
    return True


def record_answer(goal: Goal, answer: str | Answer, timestamp: datetime) -> Response:
    """
    Append a check-in answer. Allowed whether or not the goal is active.
    A naive timestamp is taken as UTC, like every stored one.

    Raises:
        ValueError: for an unknown answer or a SESSION_END marker
    """
    parsed = parse_answer(answer)
    if parsed == Answer.SESSION_END:
        raise ValueError("session_end is recorded by pausing the goal, not as an answer")
    response = Response(answer=parsed, timestamp=parse_timestamp(timestamp))
    goal.responses.append(response)
    return response


def apply_edit(
    goal: Goal,
    now: datetime,
    title: str | None = None,
    interval_minutes: int | None = None,
    success_threshold: int | None = None,
) -> bool:
    """
    Update a goal's editable fields.

    An active goal always restarts its cadence from now, even when the
    interval did not change.

    Returns:
        True if the goal is active and its trigger must be rescheduled
    """
    if title is not None:
        goal.title = title
    if interval_minutes is not None:
        goal.interval_minutes = interval_minutes
    if success_threshold is not None:
        goal.success_threshold = success_threshold

    if not goal.is_active:
        return False
    goal.next_fire_at = now + goal.interval
    return True
