"""
Logging for the goal engine: structlog on top of stdlib logging.

Store operations run inside goal_context(), so every line they log carries
goal_id and operation as fields instead of repeating them in the message.

Level and format resolve in this order:
    1. explicit arguments to setup_logging()
    2. CONSTANT_GOAL_LOG_LEVEL / CONSTANT_GOAL_LOG_FORMAT
    3. the caller's defaults (create_goal_service passes the `logging`
       section of args/goals.yaml)

Usage:
    from constant_goal.logging_config import get_logger, goal_context

    logger = get_logger(__name__)
    with goal_context(goal_id, "pause_goal"):
        logger.info("Pausing goal")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

import structlog

LEVEL_ENV = "CONSTANT_GOAL_LOG_LEVEL"
FORMAT_ENV = "CONSTANT_GOAL_LOG_FORMAT"

# Marks the root handler installed here so a second setup replaces only it
_HANDLER_FLAG = "_constant_goal_handler"


def _resolve_level(level: str | None, default_level: str) -> int:
    name = level or os.environ.get(LEVEL_ENV) or default_level
    numeric = logging.getLevelName(name.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def _resolve_json(json_output: bool | None, default_format: str) -> bool:
    if json_output is not None:
        return json_output
    fmt = os.environ.get(FORMAT_ENV) or default_format
    return fmt.lower() == "json"


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    default_level: str = "INFO",
    default_format: str = "console",
    stream: IO[str] | None = None,
) -> None:
    """
    Route structlog and stdlib records through one root handler.

    Safe to call more than once: the handler from a previous call is
    replaced, handlers added by the host application are left alone.
    """
    numeric_level = _resolve_level(level, default_level)
    as_json = _resolve_json(json_output, default_format)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if as_json:
        render_chain: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_chain = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *render_chain,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_FLAG, True)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _HANDLER_FLAG, False)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def goal_context(goal_id: str, operation: str) -> Iterator[None]:
    """Bind goal_id and operation to every log line emitted in the block."""
    with structlog.contextvars.bound_contextvars(goal_id=goal_id, operation=operation):
        yield


__all__ = ["get_logger", "goal_context", "setup_logging"]
