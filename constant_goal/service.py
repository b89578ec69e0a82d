"""
Goal Service composition root

Builds exactly one repository, scheduler, store and dispatcher and wires
them together. There are no module-level singletons: the host application
keeps the returned GoalService for the lifetime of the process, and tests
build their own with fakes.

Usage:
    from constant_goal.service import create_goal_service

    service = create_goal_service()
    service.store.add_goal("Drink water", interval_minutes=30)

    # From the notification backend's callbacks
    service.dispatcher.fired({"goal_id": goal_id})
    service.dispatcher.answered({"goal_id": goal_id}, "YES_ACTION")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from constant_goal import PROJECT_ROOT
from constant_goal.config_models import GoalsConfig, load_and_validate
from constant_goal.goals.models import utcnow
from constant_goal.goals.store import GoalStore
from constant_goal.logging_config import get_logger, setup_logging
from constant_goal.notify.base import InMemoryTriggerScheduler, TriggerScheduler
from constant_goal.notify.dispatcher import SignalDispatcher
from constant_goal.storage.base import GoalRepository, InMemoryGoalRepository
from constant_goal.storage.sqlite_store import SQLiteGoalRepository

logger = get_logger(__name__)


@dataclass
class GoalService:
    config: GoalsConfig
    repository: GoalRepository
    scheduler: TriggerScheduler
    store: GoalStore
    dispatcher: SignalDispatcher


def build_repository(config: GoalsConfig) -> GoalRepository:
    if config.storage.backend == "memory":
        return InMemoryGoalRepository()

    db_path = Path(config.storage.db_path)
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    return SQLiteGoalRepository(db_path=db_path, storage_key=config.storage.storage_key)


def create_goal_service(
    config: GoalsConfig | None = None,
    repository: GoalRepository | None = None,
    scheduler: TriggerScheduler | None = None,
    clock: Callable[[], datetime] = utcnow,
    load: bool = True,
    configure_logging: bool = True,
) -> GoalService:
    """
    Build and wire the goal engine.

    Args:
        config: Settings; read from args/goals.yaml when omitted
        repository: Storage override (defaults to the configured backend)
        scheduler: Notification backend (defaults to an in-memory one)
        clock: Source of "now" shared by store and dispatcher
        load: Load stored goals before returning
        configure_logging: Install the structlog handler using the config's
            logging section (hosts with their own logging pass False)

    Returns:
        GoalService holding every collaborator
    """
    if config is None:
        config = load_and_validate("goals")

    if configure_logging:
        setup_logging(
            default_level=config.logging.level,
            default_format=config.logging.format,
        )

    repository = repository or build_repository(config)
    scheduler = scheduler or InMemoryTriggerScheduler()

    store = GoalStore(
        repository=repository,
        scheduler=scheduler,
        clock=clock,
        allowed_intervals=config.goals.allowed_intervals,
        notification_body=config.notifications.body,
        notification_category=config.notifications.category,
        min_trigger_seconds=config.notifications.min_trigger_seconds,
        default_interval_minutes=config.goals.default_interval_minutes,
        default_success_threshold=config.goals.default_success_threshold,
    )

    dispatcher = SignalDispatcher(
        yes_action=config.notifications.yes_action,
        no_action=config.notifications.no_action,
        clock=clock,
    )
    dispatcher.register(store)

    if load:
        store.load()

    logger.info(f"Goal service ready ({type(repository).__name__}, {type(scheduler).__name__})")
    return GoalService(
        config=config,
        repository=repository,
        scheduler=scheduler,
        store=store,
        dispatcher=dispatcher,
    )
