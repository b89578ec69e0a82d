"""Goal Engine - check-in scheduling and session reconstruction

Philosophy:
    The response log is the only ground truth. Sessions, ratios and missed
    check-ins are derived from it on every read, so there is nothing to
    invalidate when a late answer arrives.

Components:
    models.py: Goal and Response records plus their serialized form
    sessions.py: Split a response log into sessions at session-end markers
    analyzer.py: Per-session statistics and the reconstructed timeline
    scheduling.py: Start/pause/fire/edit transitions on a single goal
    store.py: The one place goals are mutated, persisted and rescheduled

Usage:
    from constant_goal.goals.sessions import partition_sessions
    from constant_goal.goals.analyzer import build_session_summaries

    sessions = partition_sessions(goal.responses)
    summaries = build_session_summaries(goal)
"""

# Reminder cadences offered by the goal form (minutes)
ALLOWED_INTERVALS = (1, 5, 15, 30, 60, 120)
DEFAULT_INTERVAL_MINUTES = 5

# Yes percentage a session needs to count as a success
DEFAULT_SUCCESS_THRESHOLD = 80

# Answers a user can give to a check-in (session_end is reserved for pause)
ANSWER_CHOICES = ("yes", "no", "none")

__all__ = [
    "ALLOWED_INTERVALS",
    "DEFAULT_INTERVAL_MINUTES",
    "DEFAULT_SUCCESS_THRESHOLD",
    "ANSWER_CHOICES",
]
