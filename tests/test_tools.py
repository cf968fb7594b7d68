"""Unit tests for the tool registry and plugin discovery."""

from __future__ import annotations

from importlib.metadata import EntryPoint

import pytest
from multitool import tools
from multitool.builtin import DescribeTool
from multitool.config import Settings
from multitool.tools import (
    DuplicateToolError,
    ToolNotFoundError,
    ToolRegistry,
    build_default_registry,
    load_plugin_tools,
)


@pytest.mark.unit
def test_lookup_returns_registered_factory() -> None:
    registry = ToolRegistry()
    registry.register("fft", DescribeTool)

    assert registry.lookup("fft") is DescribeTool
    assert "fft" in registry
    assert len(registry) == 1


@pytest.mark.unit
def test_lookup_unknown_name_raises_not_found() -> None:
    registry = ToolRegistry()

    with pytest.raises(ToolNotFoundError) as exc_info:
        registry.lookup("missing")

    assert exc_info.value.name == "missing"
    assert isinstance(exc_info.value, KeyError)


@pytest.mark.unit
def test_register_rejects_duplicate_names() -> None:
    registry = ToolRegistry()
    registry.register("fft", DescribeTool)

    with pytest.raises(DuplicateToolError, match="fft"):
        registry.register("fft", DescribeTool)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "   "])
def test_register_rejects_blank_names(name: str) -> None:
    with pytest.raises(ValueError, match="non-empty"):
        ToolRegistry().register(name, DescribeTool)


@pytest.mark.unit
def test_names_are_sorted_regardless_of_registration_order() -> None:
    registry = ToolRegistry()
    for name in ("transpose", "fft", "matmul"):
        registry.register(name, DescribeTool)

    assert registry.names() == ("fft", "matmul", "transpose")


@pytest.mark.unit
def test_load_plugin_tools_registers_entry_points(monkeypatch: pytest.MonkeyPatch) -> None:
    entry_point = EntryPoint(
        name="inspect",
        value="multitool.builtin:DescribeTool",
        group=tools.PLUGIN_ENTRY_POINT_GROUP,
    )
    monkeypatch.setattr(tools, "entry_points", lambda group: [entry_point])
    registry = ToolRegistry()

    assert load_plugin_tools(registry) == 1
    assert registry.lookup("inspect") is DescribeTool


@pytest.mark.unit
def test_default_registry_skips_plugins_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(group: str) -> list[EntryPoint]:
        raise AssertionError("entry points must not be scanned")

    monkeypatch.setattr(tools, "entry_points", _fail)

    registry = build_default_registry(Settings(plugins_disabled=True))

    assert registry.names() == ("describe", "transpose")


@pytest.mark.unit
def test_default_registry_adds_discovered_plugins(monkeypatch: pytest.MonkeyPatch) -> None:
    entry_point = EntryPoint(
        name="inspect",
        value="multitool.builtin:DescribeTool",
        group=tools.PLUGIN_ENTRY_POINT_GROUP,
    )
    monkeypatch.setattr(tools, "entry_points", lambda group: [entry_point])

    registry = build_default_registry(Settings())

    assert registry.names() == ("describe", "inspect", "transpose")
