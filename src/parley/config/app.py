"""
Application configuration for the parley CLI.

Hierarchy: CLI overrides > YAML/JSON config file > model defaults. Paths
in the file are kept as written; relative paths resolve against the
working directory of the process using them.
"""

import json
import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from parley.i18n import LocaleStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "parley.yaml"


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="logging.Formatter format string",
    )


class ParleyConfig(BaseModel):
    """Where templates and locale catalogs live, and how to render them."""

    templates_dir: str = Field(
        default="prompts",
        description="Root directory of the template tree",
    )
    locales_dirs: list[str] = Field(
        default_factory=list,
        description="Catalog search roots. Empty means <templates_dir>/locales",
    )
    default_locale: str = Field(
        default="en",
        description="Locale used when none is requested and as the last fallback",
    )
    template_extensions: list[str] = Field(
        default_factory=lambda: [".md"],
        description="File suffixes treated as prompt documents",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    @field_validator("default_locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        """Validate the default locale code is well formed."""
        if not LocaleStore.is_valid_locale(v):
            raise ValueError(f"Invalid locale code: {v!r}")
        return v

    @field_validator("template_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Ensure every extension starts with a dot."""
        if not v:
            raise ValueError("At least one template extension is required")
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]

    @property
    def templates_path(self) -> Path:
        return Path(self.templates_dir).expanduser()

    def locale_roots(self) -> list[Path]:
        """Catalog roots, defaulting to the ``locales`` folder of the template tree."""
        if self.locales_dirs:
            return [Path(d).expanduser() for d in self.locales_dirs]
        return [self.templates_path / "locales"]

    def create_locale_store(self) -> LocaleStore:
        return LocaleStore(self.locale_roots(), default_locale=self.default_locale)


def load_yaml(config_file: str | Path) -> dict[str, Any]:
    """
    Load YAML or JSON configuration file.

    Args:
        config_file: Path to YAML or JSON configuration file

    Returns:
        Parsed content, or an empty dict if the file does not exist

    Raises:
        ValueError: If the content is invalid or the extension is unsupported
    """
    config_path = Path(config_file).expanduser()

    if not config_path.exists():
        logger.debug(f"Config file {config_path} not found, using defaults")
        return {}

    file_ext = config_path.suffix.lower()
    if file_ext not in (".yaml", ".yml", ".json"):
        raise ValueError(
            f"Config file must have .yaml, .yml, or .json extension, got: {file_ext}\n"
            f"File: {config_path}"
        )

    try:
        content = config_path.read_text(encoding="utf-8")
        if file_ext == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")
    return data


def apply_cli_overrides(
    config_dict: dict[str, Any],
    cli_overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Apply CLI argument overrides to a config dictionary.

    Dotted keys such as ``logging.level`` address nested sections. ``None``
    values are skipped so unset CLI options do not clobber file values.
    """
    if not cli_overrides:
        return config_dict

    for key, value in cli_overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        current = config_dict
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

    return config_dict


def load_config(
    config_file: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ParleyConfig:
    """
    Load configuration with hierarchy: CLI > file > defaults.

    Args:
        config_file: Path to a YAML/JSON config file (default: ./parley.yaml)
        cli_overrides: Dictionary of CLI argument overrides

    Returns:
        Validated ParleyConfig instance

    Raises:
        ValueError: If the file or the resulting configuration is invalid
    """
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    config_dict = load_yaml(config_file)
    config_dict = apply_cli_overrides(config_dict, cli_overrides)

    try:
        return ParleyConfig(**config_dict)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed: {e}\n"
            f"Please check your configuration file at {config_file}"
        ) from e
