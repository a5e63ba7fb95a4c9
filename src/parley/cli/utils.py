"""
Shared utilities for CLI commands.
"""

import logging
from pathlib import Path
from typing import Any

import click

from parley.config.app import LoggingSettings, ParleyConfig, load_yaml
from parley.prompts import TemplateSet

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, settings: LoggingSettings | None = None) -> None:
    """
    Configure logging for CLI.

    Args:
        verbose: If True, enable DEBUG level logging
        settings: Configured level and format, used when not verbose
    """
    settings = settings or LoggingSettings()
    log_level = logging.DEBUG if verbose else getattr(logging, settings.level.upper())
    logging.basicConfig(
        level=log_level,
        format=settings.format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_var_string(var_string: str) -> tuple[str, str]:
    """Parse a 'key=value' string into (key, value).

    Raises:
        ValueError: If string is not in key=value format
    """
    if "=" not in var_string:
        raise ValueError(f"Invalid variable format (expected key=value): {var_string}")

    key, value = var_string.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError(f"Empty variable name in: {var_string}")

    return key, value.strip()


def parse_vars(var_list: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse repeated ``--var key=value`` options into a dict. Later keys win."""
    result: dict[str, str] = {}
    for var_string in var_list:
        key, value = parse_var_string(var_string)
        result[key] = value
    return result


def collect_variables(vars_file: str | None, var_list: tuple[str, ...]) -> dict[str, Any]:
    """Variables from ``--vars-file`` overlaid with ``--var`` options.

    Raises:
        click.BadParameter: If the file or an option is malformed
    """
    variables: dict[str, Any] = {}
    if vars_file:
        try:
            variables.update(load_yaml(vars_file))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--vars-file") from e
    try:
        variables.update(parse_vars(var_list))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--var") from e
    return variables


def get_config(ctx: click.Context) -> ParleyConfig:
    config: ParleyConfig = ctx.obj["config"]
    return config


def build_template_set(config: ParleyConfig) -> TemplateSet:
    """Scan the configured template directory."""
    templates_path: Path = config.templates_path
    if not templates_path.is_dir():
        raise click.ClickException(f"Template directory not found: {templates_path}")
    return TemplateSet.from_dir(
        templates_path,
        locale_store=config.create_locale_store(),
        extensions=config.template_extensions,
    )
