"""Tool registry and tool contracts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Protocol

from multitool.config import Settings

if TYPE_CHECKING:
    from multitool.backend import ExecutableUnit
    from multitool.config import RuntimeConfig
    from multitool.options import OptionSchema, ParsedOptions

logger = logging.getLogger(__name__)

PLUGIN_ENTRY_POINT_GROUP = "multitool.tools"


class Tool(Protocol):
    """Protocol for a unit of work selectable by name from the command line."""

    def declare_options(self) -> OptionSchema:
        """Return the options this tool accepts on top of the general options."""

    def configure(self, options: ParsedOptions, config: RuntimeConfig) -> None:
        """Receive the parsed options and the resolved runtime configuration."""

    def build_work(self) -> ExecutableUnit:
        """Return the executable unit handed to the execution backend."""


ToolFactory = Callable[[], Tool]


class DuplicateToolError(ValueError):
    """Raised when a tool name is registered twice."""


class ToolNotFoundError(KeyError):
    """Raised when a tool name is not present in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No tool registered under '{self.name}'."


class ToolRegistry:
    """Mapping from tool name to a zero-argument factory.

    Entries are only ever added, and only before dispatch starts, so reads
    need no locking.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ToolFactory] = {}

    def register(self, name: str, factory: ToolFactory) -> None:
        """Register ``factory`` under ``name``; names must be unique."""
        if not name or not name.strip():
            raise ValueError("Tool name must be a non-empty string.")
        if name in self._factories:
            raise DuplicateToolError(f"Tool '{name}' is already registered.")
        self._factories[name] = factory

    def lookup(self, name: str) -> ToolFactory:
        """Return the factory registered under ``name``."""
        try:
            return self._factories[name]
        except KeyError as error:
            raise ToolNotFoundError(name) from error

    def names(self) -> tuple[str, ...]:
        """Return registered names in lexicographic order."""
        return tuple(sorted(self._factories))

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def load_plugin_tools(registry: ToolRegistry, group: str = PLUGIN_ENTRY_POINT_GROUP) -> int:
    """Register tools advertised by installed distributions under ``group``.

    Each entry point must load to a tool factory; its entry point name becomes
    the tool name. Returns the number of tools registered.
    """
    count = 0
    for entry_point in entry_points(group=group):
        registry.register(entry_point.name, entry_point.load())
        logger.debug("Registered plugin tool %s from %s", entry_point.name, entry_point.value)
        count += 1
    return count


def build_default_registry(settings: Settings) -> ToolRegistry:
    """Build the registry used by the command-line driver."""
    from multitool.builtin import register_builtin_tools

    registry = ToolRegistry()
    register_builtin_tools(registry)
    if settings.plugins_disabled:
        logger.debug("Plugin discovery disabled by settings.")
    else:
        load_plugin_tools(registry)
    return registry
