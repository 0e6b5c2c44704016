"""Unit tests for configuration management."""

import pytest
from pathlib import Path

from plan_app.config.defaults import DefaultConfig, get_default_config
from plan_app.config.loader import ConfigLoader
from plan_app.config.validation import ConfigValidator
from plan_app.errors import ConfigError


class TestDefaultConfig:
    """Test suite for default configuration."""

    def test_default_config_creation(self) -> None:
        config = get_default_config()
        assert config.debounce.wait_ms == 1000
        assert config.debounce.leading is False
        assert config.channels.tests_topic == "tests"
        assert config.plan_options.auto_apply is False
        assert config.logging.level == "INFO"

    def test_from_dict(self) -> None:
        config = DefaultConfig.from_dict({
            "debounce": {"wait_ms": 250},
            "plan_options": {"skip_tests": True},
        })
        assert config.debounce.wait_ms == 250
        assert config.plan_options.skip_tests is True
        assert config.channels.report_topic == "report"

    def test_from_dict_rejects_invalid(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            DefaultConfig.from_dict({"debounce": {"wait_ms": -1}})
        assert any("debounce.wait_ms" in error for error in exc_info.value.errors)


class TestConfigLoader:
    """Test suite for configuration loader."""

    def test_config_loader_creation(self) -> None:
        loader = ConfigLoader.create()
        assert isinstance(loader.config_dir, Path)
        assert (loader.config_dir / "plan.yaml").exists()

    def test_merge_config_unknown_environment(self) -> None:
        """Unknown environments use file and built-in defaults."""
        loader = ConfigLoader.create()
        config = loader.merge_config("staging")

        assert config["debounce"]["wait_ms"] == 1000
        assert config["plan_options"]["auto_apply"] is False

    def test_merge_config_environment_overrides(self) -> None:
        loader = ConfigLoader.create()

        dev = loader.merge_config("dev")
        prod = loader.merge_config("prod")

        assert dev["plan_options"]["auto_apply"] is True
        assert prod["plan_options"]["auto_apply"] is False
        assert prod["plan_options"]["no_gaps"] is True
        assert prod["plan_options"]["skip_tests"] is False

    def test_session_overrides_win(self) -> None:
        loader = ConfigLoader.create()
        config = loader.merge_config("dev", {"plan_options": {"auto_apply": False}})

        assert config["plan_options"]["auto_apply"] is False
        assert config["plan_options"]["skip_tests"] is False

    def test_load_returns_validated_config(self) -> None:
        config = ConfigLoader.create().load("prod", {"debounce": {"wait_ms": 500}})

        assert isinstance(config, DefaultConfig)
        assert config.debounce.wait_ms == 500
        assert config.plan_options.no_gaps is True

    def test_load_rejects_invalid_overrides(self) -> None:
        with pytest.raises(ConfigError):
            ConfigLoader.create().load("dev", {"plan_options": {"turbo": True}})

    def test_missing_config_file(self, tmp_path) -> None:
        loader = ConfigLoader.create(tmp_path)
        assert loader.load_file() == {}
        assert loader.load("dev") == get_default_config()

    def test_invalid_yaml(self, tmp_path) -> None:
        (tmp_path / "plan.yaml").write_text("defaults: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.create(tmp_path).load_file()

    def test_non_mapping_yaml(self, tmp_path) -> None:
        (tmp_path / "plan.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            ConfigLoader.create(tmp_path).load_file()


class TestConfigValidator:
    """Test suite for configuration validation."""

    def test_valid_default_config(self) -> None:
        loader = ConfigLoader.create()
        assert ConfigValidator.validate_config(loader.merge_config("dev")) == []

    def test_unknown_section(self) -> None:
        errors = ConfigValidator.validate_config({"retry": {}})
        assert errors[0].field == "retry"

    def test_section_must_be_mapping(self) -> None:
        errors = ConfigValidator.validate_config({"debounce": 100})
        assert errors[0].message == "Must be a mapping"

    @pytest.mark.parametrize("params", [
        {"wait_ms": -5},
        {"wait_ms": 1.5},
        {"wait_ms": True},
        {"leading": "yes"},
        {"trailing": True},
    ])
    def test_invalid_debounce_params(self, params) -> None:
        assert ConfigValidator.validate_debounce_params(params)

    def test_channel_topics_must_be_distinct(self) -> None:
        errors = ConfigValidator.validate_channel_params({
            "tests_topic": "events", "report_topic": "events"
        })
        assert [error.field for error in errors] == ["channels"]

    def test_empty_topic(self) -> None:
        errors = ConfigValidator.validate_channel_params({"tasks_topic": " "})
        assert errors[0].field == "channels.tasks_topic"

    def test_plan_option_types(self) -> None:
        errors = ConfigValidator.validate_plan_options({
            "skip_tests": "no", "restate_models": 5, "create_from": None
        })
        assert {error.field for error in errors} == {
            "plan_options.skip_tests", "plan_options.restate_models"
        }

    def test_logging_params(self) -> None:
        assert ConfigValidator.validate_logging_params({"level": "debug"}) == []
        errors = ConfigValidator.validate_logging_params({"level": "LOUD", "format_json": 1})
        assert len(errors) == 2
