"""
Parley CLI entry point.
"""

import click

from parley.config.app import load_config

from .render import converse, render
from .templates import inspect, list_cmd
from .utils import setup_logging


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to custom configuration file",
)
@click.option("--templates-dir", "-d", help="Template directory (overrides config)")
@click.option("--default-locale", help="Default locale (overrides config)")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    templates_dir: str | None,
    default_locale: str | None,
    verbose: bool,
) -> None:
    """Parley - localized prompt templates for LLM applications."""
    overrides = {"templates_dir": templates_dir, "default_locale": default_locale}
    try:
        settings = load_config(config, cli_overrides=overrides)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(verbose, settings.logging)
    ctx.ensure_object(dict)
    ctx.obj["config"] = settings


# Register commands
cli.add_command(list_cmd)
cli.add_command(inspect)
cli.add_command(render)
cli.add_command(converse)
