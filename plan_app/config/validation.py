"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

KNOWN_SECTIONS = ("debounce", "channels", "plan_options", "logging")

BOOLEAN_PLAN_OPTIONS = (
    "skip_tests",
    "skip_backfill",
    "no_gaps",
    "forward_only",
    "auto_apply",
    "no_auto_categorization",
    "include_unmodified",
)

STRING_PLAN_OPTIONS = ("restate_models", "create_from")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged configuration dictionary."""
        errors = []

        for section, value in config.items():
            if section not in KNOWN_SECTIONS:
                errors.append(ValidationError(
                    field=section,
                    message="Unknown configuration section",
                    value=value
                ))
            elif not isinstance(value, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=value
                ))

        if errors:
            return errors

        errors.extend(ConfigValidator.validate_debounce_params(config.get("debounce", {})))
        errors.extend(ConfigValidator.validate_channel_params(config.get("channels", {})))
        errors.extend(ConfigValidator.validate_plan_options(config.get("plan_options", {})))
        errors.extend(ConfigValidator.validate_logging_params(config.get("logging", {})))
        return errors

    @staticmethod
    def validate_debounce_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate debounce parameters."""
        errors = []

        if "wait_ms" in params:
            value = params["wait_ms"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(ValidationError(
                    field="debounce.wait_ms",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "leading" in params and not isinstance(params["leading"], bool):
            errors.append(ValidationError(
                field="debounce.leading",
                message="Must be a boolean",
                value=params["leading"]
            ))

        errors.extend(_unknown_keys("debounce", params, ("wait_ms", "leading")))
        return errors

    @staticmethod
    def validate_channel_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate channel topic names."""
        errors = []
        topics = ("tests_topic", "report_topic", "tasks_topic")

        for key in topics:
            if key in params:
                value = params[key]
                if not isinstance(value, str) or not value.strip():
                    errors.append(ValidationError(
                        field=f"channels.{key}",
                        message="Must be a non-empty string",
                        value=value
                    ))

        names = [params[key] for key in topics if isinstance(params.get(key), str)]
        if len(names) != len(set(names)):
            errors.append(ValidationError(
                field="channels",
                message="Topic names must be distinct",
                value=names
            ))

        errors.extend(_unknown_keys("channels", params, topics))
        return errors

    @staticmethod
    def validate_plan_options(params: dict[str, Any]) -> list[ValidationError]:
        """Validate plan option defaults or overrides."""
        errors = []

        for key in BOOLEAN_PLAN_OPTIONS:
            if key in params and not isinstance(params[key], bool):
                errors.append(ValidationError(
                    field=f"plan_options.{key}",
                    message="Must be a boolean",
                    value=params[key]
                ))

        for key in STRING_PLAN_OPTIONS:
            if key in params and params[key] is not None and not isinstance(params[key], str):
                errors.append(ValidationError(
                    field=f"plan_options.{key}",
                    message="Must be a string or null",
                    value=params[key]
                ))

        errors.extend(_unknown_keys(
            "plan_options", params, BOOLEAN_PLAN_OPTIONS + STRING_PLAN_OPTIONS
        ))
        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="logging.format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        errors.extend(_unknown_keys("logging", params, ("level", "format_json")))
        return errors


def _unknown_keys(section: str, params: dict[str, Any], known: tuple) -> list[ValidationError]:
    return [
        ValidationError(field=f"{section}.{key}", message="Unknown parameter", value=value)
        for key, value in params.items()
        if key not in known
    ]
