"""
Rendering commands: ``parley render`` and ``parley converse``.
"""

import json
import logging

import click

from parley.errors import PromptError

from .utils import build_template_set, collect_variables, get_config

logger = logging.getLogger(__name__)

_var_option = click.option(
    "--var",
    "-v",
    "var_list",
    multiple=True,
    help="Template variable as key=value (repeatable)",
)
_vars_file_option = click.option(
    "--vars-file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML or JSON file with template variables",
)
_locale_option = click.option("--locale", "-l", help="Locale code, e.g. es-MX")


@click.command()
@click.argument("name")
@_var_option
@_vars_file_option
@_locale_option
@click.pass_context
def render(
    ctx: click.Context,
    name: str,
    var_list: tuple[str, ...],
    vars_file: str | None,
    locale: str | None,
) -> None:
    """Render template NAME to stdout."""
    variables = collect_variables(vars_file, var_list)
    try:
        output = build_template_set(get_config(ctx)).render(name, variables, locale=locale)
    except PromptError as e:
        raise click.ClickException(str(e)) from e
    click.echo(output, nl=not output.endswith("\n"))


@click.command()
@click.argument("name")
@_var_option
@_vars_file_option
@_locale_option
@click.option("--json", "json_format", is_flag=True, help="Output a JSON list of chat messages")
@click.pass_context
def converse(
    ctx: click.Context,
    name: str,
    var_list: tuple[str, ...],
    vars_file: str | None,
    locale: str | None,
    json_format: bool,
) -> None:
    """Render conversation NAME and print its turns."""
    variables = collect_variables(vars_file, var_list)
    try:
        turns = build_template_set(get_config(ctx)).render_conversation(name, variables, locale=locale)
    except PromptError as e:
        raise click.ClickException(str(e)) from e

    if json_format:
        click.echo(json.dumps([turn.to_message() for turn in turns], indent=2, ensure_ascii=False))
        return

    for index, turn in enumerate(turns):
        if index:
            click.echo()
        click.echo(f"[{turn.role.value}]")
        click.echo(turn.content)
