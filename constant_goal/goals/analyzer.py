"""
Session Analyzer

Turns one session's responses into the numbers a session list shows:
counts, Yes ratio, duration, success against the goal's threshold, and a
timeline that marks where a check-in was probably missed.

Missed check-ins are inferred from gaps. When two consecutive answers are
at least two intervals apart, ONE missed marker is placed one interval
after the earlier answer. A gap of five intervals therefore still yields a
single marker; this is a known under-count, kept so the timeline does not
fill up with guesses during long breaks.

Usage:
    from constant_goal.goals.analyzer import build_session_summaries

    for summary in build_session_summaries(goal, newest_first=True):
        print(summary.title, summary.outcome)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from . import DEFAULT_SUCCESS_THRESHOLD
from .models import Answer, Goal, Response
from .sessions import partition_sessions, sort_responses


class SessionOutcome(StrEnum):
    """How a session compares to its goal's success threshold."""

    MET = "met"
    NOT_MET = "not_met"
    NO_DATA = "no_data"  # no Yes or No answers to judge


class TimelineKind(StrEnum):
    RESPONSE = "response"
    MISSED = "missed"


@dataclass(frozen=True)
class TimelineEntry:
    kind: TimelineKind
    timestamp: datetime
    answer: Answer | None = None
    response_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "answer": self.answer.value if self.answer else None,
            "response_id": self.response_id,
        }


@dataclass
class SessionSummary:
    """Statistics for one session of a goal."""

    chronological_index: int  # 0 = oldest
    start: datetime | None
    end: datetime | None
    duration_seconds: float
    total_responses: int
    yes_count: int
    no_count: int
    none_count: int
    is_active: bool = False
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD
    title: str = ""

    @property
    def session_number(self) -> int:
        """1-based number for display (1 = oldest)."""
        return self.chronological_index + 1

    @property
    def yes_no_denominator(self) -> int:
        return self.yes_count + self.no_count

    @property
    def yes_ratio(self) -> float:
        if self.yes_no_denominator == 0:
            return 0.0
        return self.yes_count / self.yes_no_denominator

    @property
    def yes_percent(self) -> int:
        """Yes ratio as a whole percentage, rounding halves up."""
        return math.floor(self.yes_ratio * 100 + 0.5)

    @property
    def outcome(self) -> SessionOutcome:
        if self.yes_no_denominator == 0:
            return SessionOutcome.NO_DATA
        if self.yes_percent >= self.success_threshold:
            return SessionOutcome.MET
        return SessionOutcome.NOT_MET

    @property
    def meets_threshold(self) -> bool:
        return self.outcome == SessionOutcome.MET

    def to_dict(self) -> dict[str, Any]:
        return {
            "chronological_index": self.chronological_index,
            "session_number": self.session_number,
            "title": self.title,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "duration_seconds": self.duration_seconds,
            "duration": format_duration(self.duration_seconds),
            "total_responses": self.total_responses,
            "yes_count": self.yes_count,
            "no_count": self.no_count,
            "none_count": self.none_count,
            "yes_ratio": self.yes_ratio,
            "yes_percent": self.yes_percent,
            "outcome": self.outcome.value,
            "is_active": self.is_active,
            "success_threshold": self.success_threshold,
        }


@dataclass
class SessionDetail:
    summary: SessionSummary
    timeline: list[TimelineEntry] = field(default_factory=list)

    @property
    def missed_count(self) -> int:
        return sum(1 for entry in self.timeline if entry.kind == TimelineKind.MISSED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "timeline": [entry.to_dict() for entry in self.timeline],
            "missed_count": self.missed_count,
        }


def summarize_session(
    events: Sequence[Response],
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD,
    chronological_index: int = 0,
    is_active: bool = False,
) -> SessionSummary:
    """
    Compute statistics for one session.

    Args:
        events: The session's responses, as produced by partition_sessions
        success_threshold: Yes percentage needed to count as met
        chronological_index: Position of the session among all sessions
        is_active: Whether this is the open session of an active goal

    Returns:
        SessionSummary (start/end are None for an empty session)
    """
    yes = sum(1 for r in events if r.answer == Answer.YES)
    no = sum(1 for r in events if r.answer == Answer.NO)
    none = sum(1 for r in events if r.answer == Answer.NONE)

    start = events[0].timestamp if events else None
    end = events[-1].timestamp if events else None
    duration = 0.0
    if start is not None and end is not None:
        duration = max(0.0, (end - start).total_seconds())

    return SessionSummary(
        chronological_index=chronological_index,
        start=start,
        end=end,
        duration_seconds=duration,
        total_responses=len(events),
        yes_count=yes,
        no_count=no,
        none_count=none,
        is_active=is_active,
        success_threshold=success_threshold,
    )


def build_timeline(events: Sequence[Response], interval_minutes: int) -> list[TimelineEntry]:
    """Interleave actual answers with inferred missed check-ins."""
    interval = timedelta(minutes=interval_minutes)
    timeline: list[TimelineEntry] = []
    previous: Response | None = None

    for response in sort_responses(events):
        if previous is not None and response.timestamp - previous.timestamp >= 2 * interval:
            timeline.append(
                TimelineEntry(kind=TimelineKind.MISSED, timestamp=previous.timestamp + interval)
            )
        timeline.append(
            TimelineEntry(
                kind=TimelineKind.RESPONSE,
                timestamp=response.timestamp,
                answer=response.answer,
                response_id=response.id,
            )
        )
        previous = response

    return timeline


def format_duration(seconds: float) -> str:
    """Render a duration as '1h 02m 03s', '4m 05s' or '7s'."""
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes > 0:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def session_display_title(goal: Goal, summary: SessionSummary) -> str:
    """The user's name for a session, or one derived from the goal."""
    custom = goal.session_titles.get(summary.chronological_index)
    if custom:
        return custom
    if summary.yes_no_denominator > 0:
        return f"{goal.title} - Session {summary.session_number} ({summary.yes_percent}% Yes)"
    return f"{goal.title} - Session {summary.session_number}"


def build_session_summaries(goal: Goal, newest_first: bool = False) -> list[SessionSummary]:
    """
    Summaries for every session of a goal.

    Only the newest session can be active, and only while the goal is.
    """
    sessions = partition_sessions(goal.responses)
    newest = len(sessions) - 1
    summaries = []

    for index, events in enumerate(sessions):
        summary = summarize_session(
            events,
            success_threshold=goal.success_threshold,
            chronological_index=index,
            is_active=goal.is_active and index == newest,
        )
        summary.title = session_display_title(goal, summary)
        summaries.append(summary)

    if newest_first:
        summaries.reverse()
    return summaries


def active_placeholder(goal: Goal) -> SessionSummary | None:
    """
    Stand-in row for an active goal that has no sessions yet.

    Returns None when the goal is paused or already has a session.
    """
    if not goal.is_active or partition_sessions(goal.responses):
        return None

    summary = summarize_session(
        [],
        success_threshold=goal.success_threshold,
        chronological_index=0,
        is_active=True,
    )
    summary.title = session_display_title(goal, summary)
    return summary


def session_detail(goal: Goal, index: int) -> SessionDetail | None:
    """Summary and timeline for one session; None if the index is out of range."""
    sessions = partition_sessions(goal.responses)
    if not 0 <= index < len(sessions):
        return None

    events = sessions[index]
    summary = summarize_session(
        events,
        success_threshold=goal.success_threshold,
        chronological_index=index,
        is_active=goal.is_active and index == len(sessions) - 1,
    )
    summary.title = session_display_title(goal, summary)
    return SessionDetail(summary=summary, timeline=build_timeline(events, goal.interval_minutes))
