"""Lenient first-pass parse that only extracts the tool name."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import click

from multitool.tools import ToolFactory, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_PROG_NAME = "multitool"


class UsageError(ValueError):
    """Raised when no tool name was given on the command line."""

    def __init__(
        self,
        usage: str,
        tool_names: Sequence[str],
        *,
        list_requested: bool = False,
    ) -> None:
        super().__init__("No tool specified.")
        self.usage = usage
        self.tool_names = tuple(tool_names)
        self.list_requested = list_requested


class UnknownToolError(ValueError):
    """Raised when the requested tool name is not registered."""

    def __init__(self, name: str, tool_names: Sequence[str]) -> None:
        super().__init__(f"Unrecognised tool: '{name}'")
        self.name = name
        self.tool_names = tuple(tool_names)


@dataclass(frozen=True, slots=True)
class ToolSelection:
    """Tool chosen by the first parse pass."""

    name: str
    factory: ToolFactory
    extra_positionals: tuple[str, ...] = ()


def usage_line(prog: str) -> str:
    """Return the one-line usage shown when no tool is selected."""
    return f"Usage: {prog} tool-name [--help]"


def _build_selection_command() -> click.Command:
    """Build a parser that knows only the selection options and tolerates everything else."""
    return click.Command(
        "tool-selection",
        params=[
            click.Option(
                ["--list-tools", "list_tools"],
                is_flag=True,
                default=False,
                help="Print a list of available tools and exit.",
            ),
            click.Option(
                ["--tool-name", "tool_name"],
                default=None,
                help="Choose the tool to be executed.",
            ),
        ],
        context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
        add_help_option=False,
    )


def _positionals(tokens: Sequence[str]) -> list[str]:
    return [token for token in tokens if not token.startswith("-")]


def resolve_tool_name(
    args: Sequence[str],
    registry: ToolRegistry,
    *,
    prog: str = DEFAULT_PROG_NAME,
) -> ToolSelection:
    """Return the selected tool name and factory from raw arguments.

    Unrecognised options are left for the strict second pass because they may
    belong to the selected tool. Values for such options must be attached with
    ``=`` since their arity is not known yet.
    """
    command = _build_selection_command()
    try:
        ctx = command.make_context(prog, list(args))
    except click.ClickException as error:
        # Malformed selection options are reported by the strict pass once a
        # tool is known.
        logger.debug("Tool selection parse failed (%s); scanning raw arguments.", error)
        list_requested = False
        positionals = _positionals(args)
    else:
        list_requested = bool(ctx.params["list_tools"])
        positionals = _positionals(ctx.args)
        if ctx.params["tool_name"] is not None:
            positionals.insert(0, ctx.params["tool_name"])
    if not positionals:
        raise UsageError(usage_line(prog), registry.names(), list_requested=list_requested)

    name, *extra = positionals
    if name not in registry:
        raise UnknownToolError(name, registry.names())

    logger.info("Selected tool %s", name)
    return ToolSelection(name=name, factory=registry.lookup(name), extra_positionals=tuple(extra))
