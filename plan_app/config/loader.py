"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigError
from .defaults import DefaultConfig, get_default_config

CONFIG_FILE = "plan.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file(self) -> dict[str, Any]:
        """Load the raw YAML configuration file, empty if absent."""
        config_file = self.config_dir / CONFIG_FILE

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_file}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"{config_file} must contain a mapping")

        return data

    def load_environment_config(self, environment: str) -> dict[str, Any]:
        """Load file defaults merged with environment-specific overrides."""
        data = self.load_file()

        file_defaults = data.get("defaults") or {}
        environment_config = (data.get("environments") or {}).get(environment) or {}

        return self._deep_merge(file_defaults, environment_config)

    def merge_config(
        self,
        environment: str,
        session_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-session overrides (highest priority)
        2. Environment-specific overrides from plan.yaml
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_environment_config(environment))

        if session_overrides:
            config = self._deep_merge(config, session_overrides)

        return config

    def load(
        self,
        environment: str,
        session_overrides: Optional[dict[str, Any]] = None
    ) -> DefaultConfig:
        """Load and validate the configuration for an environment."""
        return DefaultConfig.from_dict(self.merge_config(environment, session_overrides))

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
