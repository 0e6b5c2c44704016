"""Default configuration parameters for plan sessions."""

from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ConfigError
from .validation import ConfigValidator


@dataclass(frozen=True)
class DebounceParams:
    """Run request debounce parameters."""
    wait_ms: int = 1000                # Quiet period before a run is issued
    leading: bool = False              # Fire the first call of a burst immediately


@dataclass(frozen=True)
class ChannelParams:
    """Event channel topic names."""
    tests_topic: str = "tests"
    report_topic: str = "report"
    tasks_topic: str = "tasks"         # Backfill progress feed


@dataclass(frozen=True)
class PlanOptionsParams:
    """Default plan options for a new session."""
    skip_tests: bool = False
    skip_backfill: bool = False
    no_gaps: bool = False
    forward_only: bool = False
    auto_apply: bool = False
    no_auto_categorization: bool = False
    include_unmodified: bool = False
    restate_models: Optional[str] = None
    create_from: Optional[str] = None


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete session configuration."""
    debounce: DebounceParams
    channels: ChannelParams
    plan_options: PlanOptionsParams
    logging: LoggingParams

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DefaultConfig":
        """
        Build a configuration from a merged dictionary.

        Raises:
            ConfigError: If any section fails validation
        """
        errors = ConfigValidator.validate_config(data)
        if errors:
            raise ConfigError(
                "Invalid plan session configuration",
                errors=[f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            )

        return cls(
            debounce=DebounceParams(**data.get("debounce", {})),
            channels=ChannelParams(**data.get("channels", {})),
            plan_options=PlanOptionsParams(**data.get("plan_options", {})),
            logging=LoggingParams(**data.get("logging", {})),
        )


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        debounce=DebounceParams(),
        channels=ChannelParams(),
        plan_options=PlanOptionsParams(),
        logging=LoggingParams(),
    )
