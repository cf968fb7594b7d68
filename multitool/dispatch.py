"""Tool dispatch: select, parse, configure, then hand off to the backend."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from multitool.backend import ExecutionBackend
from multitool.config import RuntimeConfig, resolve_runtime_config
from multitool.options import ParsedOptions, parse_options
from multitool.selection import DEFAULT_PROG_NAME, resolve_tool_name
from multitool.tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PreparedRun:
    """Configured tool ready to produce its executable unit."""

    tool_name: str
    tool: Tool
    options: ParsedOptions
    config: RuntimeConfig


def prepare_run(
    args: Sequence[str],
    registry: ToolRegistry,
    *,
    prog: str = DEFAULT_PROG_NAME,
) -> PreparedRun:
    """Select and configure the tool named in ``args``."""
    selection = resolve_tool_name(args, registry, prog=prog)
    if selection.extra_positionals:
        logger.debug("Positional arguments after the tool name: %s", selection.extra_positionals)
    tool = selection.factory()
    options = parse_options(args, selection.name, tool.declare_options(), prog=prog)
    config = resolve_runtime_config(options)
    logger.debug("Runtime config for %s: %s", selection.name, config)
    tool.configure(options, config)
    return PreparedRun(tool_name=selection.name, tool=tool, options=options, config=config)


def dispatch(
    args: Sequence[str],
    registry: ToolRegistry,
    backend: ExecutionBackend,
    *,
    prog: str = DEFAULT_PROG_NAME,
) -> int:
    """Run the selected tool on ``backend`` and return the backend's status."""
    prepared = prepare_run(args, registry, prog=prog)
    return backend.run(prepared.tool.build_work())
