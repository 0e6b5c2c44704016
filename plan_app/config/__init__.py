"""
Configuration module.

Default session parameters, YAML loading with per-environment overrides,
and validation of user supplied values.
"""
