"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from multitool.config import PLUGINS_DISABLED_ENV_VAR, RuntimeConfig
from multitool.options import OptionSchema, ParsedOptions
from multitool.tools import ToolRegistry


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (spawn the driver in a subprocess).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


@dataclass
class RecordingWork:
    """Executable unit that records nothing and returns a fixed status."""

    config: RuntimeConfig
    status: int = 0

    def compile(self) -> str:
        return "image"

    def save(self, image: Any, path: str) -> None:
        return None

    def load(self, path: str) -> str:
        return "image"

    def execute(self, image: Any) -> int:
        return self.status


@dataclass
class RecordingTool:
    """Tool double that keeps whatever the dispatcher hands it."""

    schema: OptionSchema = field(default_factory=lambda: OptionSchema(title="fake Options"))
    status: int = 0
    options: ParsedOptions | None = None
    config: RuntimeConfig | None = None

    def declare_options(self) -> OptionSchema:
        return self.schema

    def configure(self, options: ParsedOptions, config: RuntimeConfig) -> None:
        self.options = options
        self.config = config

    def build_work(self) -> RecordingWork:
        assert self.config is not None
        return RecordingWork(config=self.config, status=self.status)


@dataclass
class RecordingBackend:
    """Backend double that returns a fixed status and remembers the unit."""

    status: int = 0
    units: list[Any] = field(default_factory=list)

    def run(self, unit: Any) -> int:
        self.units.append(unit)
        return self.status


@pytest.fixture
def make_registry() -> Callable[..., ToolRegistry]:
    """Build a registry holding the given tool instances under their names."""

    def _make_registry(**tools: RecordingTool) -> ToolRegistry:
        registry = ToolRegistry()
        for name, tool in tools.items():
            registry.register(name, lambda tool=tool: tool)
        return registry

    return _make_registry


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def no_plugins(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep entry-point discovery out of tests that build the default registry."""
    monkeypatch.setenv(PLUGINS_DISABLED_ENV_VAR, "1")


@pytest.fixture
def make_tool() -> Callable[..., RecordingTool]:
    """Build a tool double with an optional option schema and exit status."""

    def _make_tool(schema: OptionSchema | None = None, status: int = 0) -> RecordingTool:
        if schema is None:
            return RecordingTool(status=status)
        return RecordingTool(schema=schema, status=status)

    return _make_tool
