"""
Session partitioning

A session is a maximal run of answers between two SESSION_END markers (or
the start/end of the log). The markers themselves belong to no session.

Nothing here is cached: callers partition on every read. The sort is
O(n log n) per call, which is fine for the few hundred responses a single
goal collects.

Note: session titles are keyed by the chronological index this module
produces. Any change to how consecutive markers are handled would shift
those indices.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import Response


def sort_responses(responses: Iterable[Response]) -> list[Response]:
    """Oldest first; responses sharing a timestamp keep their log order."""
    return sorted(responses, key=lambda r: r.timestamp)


def partition_sessions(responses: Iterable[Response]) -> list[list[Response]]:
    """
    Split a response log into sessions, oldest first.

    Args:
        responses: A goal's full response log, in any order

    Returns:
        List of sessions, each a non-empty chronological list of answers
    """
    sessions: list[list[Response]] = []
    current: list[Response] = []

    for response in sort_responses(responses):
        if response.is_session_end:
            # A marker with nothing before it closes nothing
            if current:
                sessions.append(current)
                current = []
        else:
            current.append(response)

    if current:
        sessions.append(current)

    return sessions


def get_session(responses: Iterable[Response], index: int) -> list[Response] | None:
    """Return the session at a chronological index, or None if out of range."""
    sessions = partition_sessions(responses)
    if 0 <= index < len(sessions):
        return sessions[index]
    return None
