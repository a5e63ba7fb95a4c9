"""
Template discovery commands: ``parley list`` and ``parley inspect``.
"""

import json
import logging

import click

from parley.errors import PromptError

from .utils import build_template_set, get_config

logger = logging.getLogger(__name__)


@click.command("list")
@click.option("--conversations", "-c", "only_conversations", is_flag=True, help="Only list conversations")
@click.option("--json", "json_format", is_flag=True, help="Output as JSON")
@click.pass_context
def list_cmd(ctx: click.Context, only_conversations: bool, json_format: bool) -> None:
    """List templates and conversations in the template directory."""
    try:
        template_set = build_template_set(get_config(ctx))
    except PromptError as e:
        raise click.ClickException(str(e)) from e

    conversations = template_set.list_conversations()
    names = conversations if only_conversations else template_set.list_templates()

    if json_format:
        click.echo(json.dumps({"templates": names, "conversations": conversations}, indent=2))
        return

    if not names:
        click.echo("No templates found.")
        return

    for name in names:
        marker = " (conversation)" if name in conversations and not only_conversations else ""
        click.echo(f"{name}{marker}")


@click.command()
@click.argument("name")
@click.option("--json", "json_format", is_flag=True, help="Output as JSON")
@click.pass_context
def inspect(ctx: click.Context, name: str, json_format: bool) -> None:
    """Show required variables, defaults, includes and catalog key of NAME."""
    try:
        template_set = build_template_set(get_config(ctx))
        template = template_set.get(name)
    except PromptError as e:
        raise click.ClickException(str(e)) from e

    info = {
        "name": template.name,
        "source": str(template.source_path) if template.source_path else None,
        "conversation": template_set.conversation_exists(name),
        "required_variables": template.required_variables,
        "default_variables": template.default_variables,
        "includes": template.includes,
        "catalog_key": template.catalog_key,
    }

    if json_format:
        click.echo(json.dumps(info, indent=2, default=str))
        return

    click.echo(f"Template: {info['name']}")
    if info["source"]:
        click.echo(f"Source: {info['source']}")
    click.echo(f"Conversation: {'yes' if info['conversation'] else 'no'}")
    click.echo(f"Required variables: {', '.join(info['required_variables']) or '(none)'}")
    if info["default_variables"]:
        click.echo("Defaults:")
        for key, value in info["default_variables"].items():
            click.echo(f"  {key} = {value!r}")
    click.echo(f"Includes: {', '.join(info['includes']) or '(none)'}")
    click.echo(f"Catalog key: {info['catalog_key'] or '(none)'}")
