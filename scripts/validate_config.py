#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plan_app.config.loader import ConfigLoader
from plan_app.config.validation import ConfigValidator, ValidationError


def validate_environment_config(loader: ConfigLoader, environment: str) -> List[ValidationError]:
    """Validate configuration for a specific environment."""
    config = loader.merge_config(environment)
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    print("🔍 Validating plan session configuration...")

    loader = ConfigLoader.create()
    environments = sorted((loader.load_file().get("environments") or {}).keys())
    environments.append("unknown-environment")  # Should use defaults

    all_valid = True

    for environment in environments:
        print(f"\n📊 Validating {environment}...")
        errors = validate_environment_config(loader, environment)

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print(f"✅ {environment} configuration is valid")

    if all_valid:
        print(f"\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print(f"\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
