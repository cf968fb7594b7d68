"""Typer CLI that selects a registered tool by name and runs it."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import click
import typer

from multitool.backend import GraphRunner
from multitool.config import (
    MutuallyExclusiveModesError,
    Settings,
    SettingsError,
    load_settings,
)
from multitool.dispatch import dispatch
from multitool.options import InvalidOptionError, SchemaConflictError
from multitool.selection import DEFAULT_PROG_NAME, UnknownToolError, UsageError
from multitool.tools import build_default_registry

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname).1s] [%(threadName)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

app = typer.Typer(add_completion=False, help="Run one of the registered tools by name.")


def configure_logging(settings: Settings) -> None:
    """Send log records to stderr using the driver's log format."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def format_tool_list(tool_names: Sequence[str]) -> str:
    """Render tool names one per line for diagnostics."""
    return "\n".join(f"  {name}" for name in tool_names)


def _echo_tool_choices(tool_names: Sequence[str]) -> None:
    typer.echo("Please choose a tool to run from the following:", err=True)
    typer.echo(f"{format_tool_list(tool_names)}\n", err=True)


@app.command(
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    },
)
def run(ctx: typer.Context) -> None:
    """Select a tool by name and run it with the general and tool options."""
    try:
        settings = load_settings()
    except SettingsError as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error
    configure_logging(settings)
    registry = build_default_registry(settings)

    try:
        status = dispatch(ctx.args, registry, GraphRunner(), prog=DEFAULT_PROG_NAME)
    except click.exceptions.Exit as error:
        raise typer.Exit(code=error.exit_code) from error
    except UsageError as error:
        typer.echo(f"{error.usage}\n")
        _echo_tool_choices(error.tool_names)
        raise typer.Exit(code=1) from error
    except UnknownToolError as error:
        typer.echo(f"{error}\n", err=True)
        _echo_tool_choices(error.tool_names)
        raise typer.Exit(code=1) from error
    except (InvalidOptionError, SchemaConflictError, MutuallyExclusiveModesError) as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error

    raise typer.Exit(code=status)


def main() -> None:
    """Console script entry point."""
    app(prog_name=DEFAULT_PROG_NAME)


if __name__ == "__main__":
    main()
