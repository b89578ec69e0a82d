from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from constant_goal import ARGS_DIR
from constant_goal.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# GoalsConfig (args/goals.yaml)
# =============================================================================

class GoalDefaultsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    allowed_intervals: list[int] = Field(default_factory=lambda: [1, 5, 15, 30, 60, 120])
    default_interval_minutes: int = Field(default=5, ge=1)
    default_success_threshold: int = Field(default=80, ge=0, le=100)

    @field_validator("allowed_intervals")
    @classmethod
    def _positive_intervals(cls, value: list[int]) -> list[int]:
        if not value or any(minutes < 1 for minutes in value):
            raise ValueError("allowed_intervals must be a non-empty list of positive minutes")
        return sorted(set(value))


class NotificationsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    body: str = Field(default="Time to check in on this goal.")
    category: str = Field(default="YES_NO_CATEGORY")
    yes_action: str = Field(default="YES_ACTION")
    no_action: str = Field(default="NO_ACTION")
    min_trigger_seconds: int = Field(default=60, ge=1)


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    backend: Literal["sqlite", "memory"] = Field(default="sqlite")
    db_path: str = Field(default="data/goals.db")
    storage_key: str = Field(default="savedGoals")


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class GoalsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    goals: GoalDefaultsConfig = Field(default_factory=GoalDefaultsConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_CONFIG_MAP: dict[str, type[BaseModel]] = {
    "goals": GoalsConfig,
}


def _read_yaml(path: Path) -> dict[str, Any]:
    """Top-level mapping of a YAML file; {} when the file is absent or empty."""
    if not path.exists():
        logger.debug(f"{path.name} not found, using defaults")
        return {}
    with open(path) as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"expected a mapping at the top level, got {type(raw).__name__}")
    return raw


def load_and_validate(
    config_name: str,
    model_class: type[BaseModel] | None = None,
    args_dir: Path | None = None,
) -> BaseModel:
    """
    Load args/<config_name>.yaml into its settings model.

    A file that cannot be read or does not validate never blocks startup:
    the problem is logged and the model's defaults are returned.

    Raises:
        ValueError: if config_name has no registered model and none is given
    """
    if model_class is None:
        model_class = _CONFIG_MAP.get(config_name)
        if model_class is None:
            raise ValueError(f"Unknown config: {config_name}. Available: {list(_CONFIG_MAP.keys())}")

    yaml_path = (args_dir or ARGS_DIR) / f"{config_name}.yaml"

    try:
        raw = _read_yaml(yaml_path)
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.warning(f"Could not read {yaml_path}: {e}, using defaults")
        return model_class()

    try:
        return model_class.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        logger.warning(f"Invalid settings in {yaml_path.name} ({fields}), using defaults")
        return model_class()
