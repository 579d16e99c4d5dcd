"""
Command-Line Interface for the caret-command protocol engine.

Usage:
    cij send LINE...      - Run command lines through one printer session
    cij repl              - Interactive session
    cij commands          - List the command table
    cij profiles          - List configured printers
"""

import sys
from pathlib import Path
from typing import Optional

import click

from .config import EngineConfig, find_profile, load_config, load_profiles
from .dispatcher import PrinterEngine
from .grammar import COMMAND_TABLE, Category

REPL_QUIT = (":quit", ":q", ":exit")


def build_engine(config: EngineConfig, profile_name: Optional[str]) -> PrinterEngine:
    """Create an engine, optionally seeded from a named printer profile.

    Raises:
        click.BadParameter: If the profile does not exist
    """
    if profile_name is None:
        return PrinterEngine(config=config)

    profile = find_profile(load_profiles(), profile_name)
    if profile is None:
        raise click.BadParameter(
            f"Unknown printer profile: '{profile_name}'", param_hint="--profile"
        )
    return PrinterEngine(config=config, overrides=profile.overrides, label=profile.key)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Engine config file (default ~/.config/cijprinter/config.json)",
)
@click.pass_context
def main(ctx, debug, config_path):
    """Continuous-inkjet printer protocol engine CLI."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config"] = load_config(config_path)


@main.command()
@click.argument("lines", nargs=-1, required=True)
@click.option("--profile", default=None, help="Printer profile name, id or host")
@click.option("--echo", is_flag=True, help="Start in verbose (echo) mode")
@click.pass_context
def send(ctx, lines, profile, echo):
    """Run command lines through one session and print each response.

    Exits with status 1 if any command failed.
    """
    engine = build_engine(ctx.obj["config"], profile)
    engine.set_debug(ctx.obj["debug"])

    if echo:
        engine.process("^EN")

    failed = False
    for line in lines:
        result = engine.process(line)
        click.echo(result.response)
        failed = failed or not result.success

    if failed:
        sys.exit(1)


@main.command()
@click.option("--profile", default=None, help="Printer profile name, id or host")
@click.pass_context
def repl(ctx, profile):
    """Interactive session.

    Type caret commands (e.g. ^SU). Session commands:
    :history shows the transcript, :reset restores defaults, :quit exits.
    """
    engine = build_engine(ctx.obj["config"], profile)
    engine.set_debug(ctx.obj["debug"])

    click.echo("Caret-command session. Type :quit to exit.")
    while True:
        try:
            line = click.prompt("", prompt_suffix="> ", default="", show_default=False)
        except click.Abort:
            break

        line = line.strip()
        if not line:
            continue
        if line.lower() in REPL_QUIT:
            break
        if line.lower() == ":history":
            for entry in reversed(engine.history()):
                click.echo(str(entry))
            continue
        if line.lower() == ":reset":
            engine.reset()
            click.echo("Session reset.")
            continue

        result = engine.process(line)
        click.echo(result.response, err=not result.success)


@main.command("commands")
@click.option(
    "--category",
    type=click.Choice([c.value for c in Category]),
    default=None,
    help="Only show one category",
)
def list_commands(category):
    """List the command table."""
    for group in Category:
        if category and group.value != category:
            continue
        click.echo(f"{group.value}:")
        for command in COMMAND_TABLE:
            if command.category is group:
                click.echo(f"  {command.usage():<22} {command.label}")


@main.command()
def profiles():
    """List configured printer profiles."""
    for profile in load_profiles():
        click.echo(f"  [{profile.id}] {profile.name:<20} {profile.key}")


if __name__ == "__main__":
    main()
