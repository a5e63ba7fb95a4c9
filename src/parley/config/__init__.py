"""
Configuration package for parley.

Pydantic settings models plus the YAML/JSON loader used by the CLI.
"""

from parley.config.app import (
    LoggingSettings,
    ParleyConfig,
    apply_cli_overrides,
    load_config,
    load_yaml,
)

__all__ = [
    "LoggingSettings",
    "ParleyConfig",
    "apply_cli_overrides",
    "load_config",
    "load_yaml",
]
