"""Tests for constant_goal/config_models.py"""

import io
import json
import logging
from unittest.mock import patch

import pytest
import structlog

from constant_goal.config_models import GoalsConfig, LoggingConfig, StorageConfig, load_and_validate
from constant_goal.logging_config import FORMAT_ENV, LEVEL_ENV, get_logger, goal_context, setup_logging


class TestGoalsConfig:
    def test_defaults(self):
        config = GoalsConfig()
        assert config.goals.allowed_intervals == [1, 5, 15, 30, 60, 120]
        assert config.goals.default_interval_minutes == 5
        assert config.goals.default_success_threshold == 80
        assert config.notifications.yes_action == "YES_ACTION"
        assert config.notifications.min_trigger_seconds == 60
        assert config.storage.backend == "sqlite"
        assert config.storage.storage_key == "savedGoals"

    def test_valid_overrides(self):
        config = GoalsConfig(
            goals={"allowed_intervals": [60, 10, 10], "default_success_threshold": 70},
            storage={"backend": "memory"},
        )
        assert config.goals.allowed_intervals == [10, 60]
        assert config.goals.default_success_threshold == 70
        assert config.storage.backend == "memory"

    def test_extra_keys_allowed(self):
        config = GoalsConfig(notifications={"body": "Hi", "sound": "chime"})
        assert config.notifications.body == "Hi"

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValueError):
            GoalsConfig(goals={"default_success_threshold": 120})

    def test_invalid_intervals_rejected(self):
        with pytest.raises(ValueError):
            GoalsConfig(goals={"allowed_intervals": [0, 5]})
        with pytest.raises(ValueError):
            GoalsConfig(goals={"allowed_intervals": []})

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            StorageConfig(backend="redis")

    def test_logging_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "console"

    def test_logging_level_is_case_insensitive(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_logging_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            LoggingConfig(format="xml")


class TestLoadAndValidate:
    def test_unknown_config_raises(self):
        with pytest.raises(ValueError, match="Unknown config"):
            load_and_validate("nonexistent_config")

    def test_missing_file_returns_defaults(self, tmp_path):
        with patch("constant_goal.config_models.ARGS_DIR", tmp_path):
            config = load_and_validate("goals")
            assert isinstance(config, GoalsConfig)
            assert config.goals.default_interval_minutes == 5

    def test_explicit_model_class(self, tmp_path):
        with patch("constant_goal.config_models.ARGS_DIR", tmp_path):
            config = load_and_validate("custom", GoalsConfig)
            assert isinstance(config, GoalsConfig)

    def test_valid_yaml_loads(self, tmp_path):
        yaml_file = tmp_path / "goals.yaml"
        yaml_file.write_text("goals:\n  default_interval_minutes: 30\nstorage:\n  backend: memory\n")
        with patch("constant_goal.config_models.ARGS_DIR", tmp_path):
            config = load_and_validate("goals")
            assert config.goals.default_interval_minutes == 30
            assert config.storage.backend == "memory"

    def test_invalid_yaml_returns_defaults(self, tmp_path):
        yaml_file = tmp_path / "goals.yaml"
        yaml_file.write_text("goals:\n  default_success_threshold: -5\n")
        with patch("constant_goal.config_models.ARGS_DIR", tmp_path):
            config = load_and_validate("goals")
            assert config.goals.default_success_threshold == 80

    def test_empty_yaml_returns_defaults(self, tmp_path):
        yaml_file = tmp_path / "goals.yaml"
        yaml_file.write_text("")
        with patch("constant_goal.config_models.ARGS_DIR", tmp_path):
            config = load_and_validate("goals")
            assert isinstance(config, GoalsConfig)

    def test_shipped_config_is_valid(self):
        """args/goals.yaml validates against the model."""
        config = load_and_validate("goals")
        assert config.goals.allowed_intervals == [1, 5, 15, 30, 60, 120]
        assert config.logging.level == "INFO"
        assert config.logging.format == "console"

    def test_args_dir_argument(self, tmp_path):
        (tmp_path / "goals.yaml").write_text("logging:\n  format: json\n")
        config = load_and_validate("goals", args_dir=tmp_path)
        assert config.logging.format == "json"

    def test_non_mapping_yaml_returns_defaults(self, tmp_path):
        (tmp_path / "goals.yaml").write_text("- a\n- b\n")
        config = load_and_validate("goals", args_dir=tmp_path)
        assert config == GoalsConfig()

    def test_yaml_syntax_error_returns_defaults(self, tmp_path):
        (tmp_path / "goals.yaml").write_text("goals: [1, 5\n")
        config = load_and_validate("goals", args_dir=tmp_path)
        assert config == GoalsConfig()



# ─────────────────────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def root_logger(monkeypatch):
    """Root logger with handlers and level restored after the test."""
    monkeypatch.delenv(LEVEL_ENV, raising=False)
    monkeypatch.delenv(FORMAT_ENV, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _last_json_line(stream: io.StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestLogging:
    def test_level_from_environment(self, root_logger, monkeypatch):
        monkeypatch.setenv(LEVEL_ENV, "warning")
        setup_logging()
        assert root_logger.level == logging.WARNING

    def test_explicit_level_beats_environment(self, root_logger, monkeypatch):
        monkeypatch.setenv(LEVEL_ENV, "ERROR")
        setup_logging(level="DEBUG")
        assert root_logger.level == logging.DEBUG

    def test_default_level_used_last(self, root_logger):
        setup_logging(default_level="ERROR")
        assert root_logger.level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self, root_logger):
        setup_logging(level="chatty")
        assert root_logger.level == logging.INFO

    def test_repeat_setup_replaces_only_its_own_handler(self, root_logger):
        """A host application's handlers survive; ours is never duplicated."""
        host_handler = logging.NullHandler()
        root_logger.addHandler(host_handler)
        before = list(root_logger.handlers)

        setup_logging(level="DEBUG", json_output=True)
        setup_logging(level="DEBUG", json_output=True)

        added = [h for h in root_logger.handlers if h not in before]
        assert len(added) == 1
        assert isinstance(added[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert host_handler in root_logger.handlers

    def test_format_from_environment(self, root_logger, monkeypatch):
        monkeypatch.setenv(FORMAT_ENV, "json")
        stream = io.StringIO()
        setup_logging(level="INFO", default_format="console", stream=stream)

        get_logger("constant_goal.test.env_format").info("env format")

        assert _last_json_line(stream)["event"] == "env format"

    def test_json_lines_carry_goal_context(self, root_logger):
        stream = io.StringIO()
        setup_logging(level="INFO", json_output=True, stream=stream)

        with goal_context("g1", "pause_goal"):
            get_logger("constant_goal.test.context").info("Pausing goal")

        line = _last_json_line(stream)
        assert line["event"] == "Pausing goal"
        assert line["goal_id"] == "g1"
        assert line["operation"] == "pause_goal"
        assert line["level"] == "info"

    def test_goal_context_unbinds(self):
        with goal_context("g1", "start_goal"):
            assert structlog.contextvars.get_contextvars() == {"goal_id": "g1", "operation": "start_goal"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_get_logger(self):
        logger = get_logger("constant_goal.test")
        logger.info("goal logging works")
