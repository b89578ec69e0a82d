"""Shared test fixtures for Constant Goal tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A controllable clock
- Recording/failing fakes for the trigger scheduler and repository
- A GoalStore wired to those fakes

Usage:
    def test_something(store, clock):
        result = store.add_goal("Stretch", interval_minutes=15)
        clock.advance(minutes=5)
        ...
"""

import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from constant_goal.goals.models import Answer, Response
from constant_goal.goals.store import GoalStore
from constant_goal.notify.base import InMemoryTriggerScheduler, TriggerRequest
from constant_goal.storage.base import InMemoryGoalRepository, RepositoryError


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingScheduler(InMemoryTriggerScheduler):
    """In-memory scheduler that also keeps an ordered call log."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.requests: list[TriggerRequest] = []

    def schedule(self, request: TriggerRequest) -> None:
        self.calls.append(("schedule", request.goal_id))
        self.requests.append(request)
        super().schedule(request)

    def cancel(self, goal_id: str) -> None:
        self.calls.append(("cancel", goal_id))
        super().cancel(goal_id)


class FailingScheduler(RecordingScheduler):
    """Scheduler whose backend rejects every request."""

    def schedule(self, request: TriggerRequest) -> None:
        self.calls.append(("schedule", request.goal_id))
        raise RuntimeError("notification permission denied")

    def cancel(self, goal_id: str) -> None:
        self.calls.append(("cancel", goal_id))
        raise RuntimeError("notification center unavailable")


class FailingRepository(InMemoryGoalRepository):
    """Repository that can read but never write."""

    def save(self, goals) -> None:
        raise RepositoryError("disk full")


def make_response(answer: str, minutes: float, start: datetime = T0) -> Response:
    """Response `minutes` after start."""
    return Response(answer=Answer(answer), timestamp=start + timedelta(minutes=minutes))


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        os.unlink(db_path)


# ─────────────────────────────────────────────────────────────────────────────
# Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def repository() -> InMemoryGoalRepository:
    return InMemoryGoalRepository()


@pytest.fixture
def store(repository, scheduler, clock) -> GoalStore:
    """GoalStore backed by in-memory fakes and the fake clock."""
    return GoalStore(repository=repository, scheduler=scheduler, clock=clock)


@pytest.fixture
def goal_id(store) -> str:
    """ID of a freshly created, inactive 15-minute goal."""
    result = store.add_goal("Sit up straight", interval_minutes=15)
    return result["data"]["goal"]["id"]


# ─────────────────────────────────────────────────────────────────────────────
# Response Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def two_session_log() -> list[Response]:
    """yes@0, no@1, session_end@2, yes@3 (minutes after T0)."""
    return [
        make_response("yes", 0),
        make_response("no", 1),
        make_response("session_end", 2),
        make_response("yes", 3),
    ]
