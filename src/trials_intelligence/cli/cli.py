"""Command-line interface for Trials Intelligence."""

import asyncio
import json
import logging
import sys

import click

from trials_intelligence.config import get_settings
from trials_intelligence.tools import TOOLS, call_tool


@click.group()
@click.version_option(package_name="trials-intelligence")
def main():
    """Trials Intelligence: query clinical trials and PubMed as tools."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command()
def tools():
    """List available tools."""
    for tool in TOOLS.values():
        click.echo(f"{tool.name}\t{tool.description}")


@main.command()
@click.argument("tool_name")
@click.option(
    "-a",
    "--args",
    "args_json",
    default="{}",
    show_default=True,
    help="Tool arguments as a JSON object",
)
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def call(tool_name: str, args_json: str, output: str | None):
    """Call TOOL_NAME and print its result envelope."""
    try:
        arguments = json.loads(args_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args")
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    envelope = asyncio.run(call_tool(tool_name, arguments))
    text = json.dumps(envelope, indent=2)

    if output:
        from pathlib import Path

        Path(output).write_text(text)
        click.echo(f"Result saved to: {output}")
    else:
        click.echo(text)

    if not envelope["ok"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
