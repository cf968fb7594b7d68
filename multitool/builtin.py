"""Tools that ship with the driver."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel, ConfigDict, Field, model_validator

from multitool.config import RuntimeConfig
from multitool.options import OptionSchema, OptionSpec, ParsedOptions
from multitool.tools import ToolRegistry

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".json"


def image_file(path: str) -> Path:
    """Return the file an image saved under ``path`` (a prefix) lives in."""
    return Path(f"{path}{IMAGE_SUFFIX}")


class _ConfiguredTool:
    """Stores what the dispatcher hands over before work is built."""

    name = ""

    def __init__(self) -> None:
        self._options: ParsedOptions | None = None
        self._config: RuntimeConfig | None = None

    def configure(self, options: ParsedOptions, config: RuntimeConfig) -> None:
        self._options = options
        self._config = config

    def _require_configured(self) -> tuple[ParsedOptions, RuntimeConfig]:
        if self._options is None or self._config is None:
            raise RuntimeError(f"Tool '{self.name}' must be configured before building work.")
        return self._options, self._config


class DescribeWork:
    """Prints the resolved configuration as JSON."""

    def __init__(self, options: ParsedOptions, config: RuntimeConfig) -> None:
        self.options = options
        self.config = config

    def compile(self) -> dict[str, Any]:
        return {
            "tool": self.options.tool_name,
            "options": dict(self.options),
            "config": self.config.model_dump(),
        }

    def save(self, image: dict[str, Any], path: str) -> None:
        target = image_file(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(image, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def load(self, path: str) -> dict[str, Any]:
        return json.loads(image_file(path).read_text(encoding="utf-8"))

    def execute(self, image: dict[str, Any]) -> int:
        typer.echo(json.dumps(image, indent=2, sort_keys=True))
        return 0


class DescribeTool(_ConfiguredTool):
    """Diagnostic tool that reports the options and runtime configuration it received."""

    name = "describe"

    def declare_options(self) -> OptionSchema:
        return OptionSchema(title=f"{self.name} Options")

    def build_work(self) -> DescribeWork:
        options, config = self._require_configured()
        return DescribeWork(options, config)


class TransposePlan(BaseModel):
    """Executable image for the transpose tool: a gather permutation."""

    model_config = ConfigDict(extra="forbid")

    rows: int = Field(ge=1)
    cols: int = Field(ge=1)
    permutation: list[int]

    @model_validator(mode="after")
    def validate_permutation(self) -> TransposePlan:
        """Validate that the permutation covers every element exactly once."""
        if sorted(self.permutation) != list(range(self.rows * self.cols)):
            raise ValueError("permutation must be a rearrangement of range(rows * cols)")
        return self


def build_transpose_plan(rows: int, cols: int) -> TransposePlan:
    """Plan a row-major ``rows x cols`` to row-major ``cols x rows`` relayout."""
    permutation = [row * cols + col for col in range(cols) for row in range(rows)]
    return TransposePlan(rows=rows, cols=cols, permutation=permutation)


def apply_plan(plan: TransposePlan, values: list[int]) -> list[list[int]]:
    """Gather ``values`` through the plan and return the transposed rows."""
    gathered = [values[index] for index in plan.permutation]
    return [gathered[start : start + plan.rows] for start in range(0, len(gathered), plan.rows)]


class TransposeWork:
    """Compiles and runs a tensor layout transpose."""

    def __init__(self, rows: int, cols: int, config: RuntimeConfig) -> None:
        self.rows = rows
        self.cols = cols
        self.config = config

    def compile(self) -> TransposePlan:
        return build_transpose_plan(self.rows, self.cols)

    def save(self, image: TransposePlan, path: str) -> None:
        target = image_file(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(image.model_dump_json(indent=2) + "\n", encoding="utf-8")

    def load(self, path: str) -> TransposePlan:
        plan = TransposePlan.model_validate_json(image_file(path).read_text(encoding="utf-8"))
        if (plan.rows, plan.cols) != (self.rows, self.cols):
            logger.info(
                "Loaded image is %dx%d; ignoring --rows/--cols (%dx%d).",
                plan.rows,
                plan.cols,
                self.rows,
                self.cols,
            )
        return plan

    def execute(self, image: TransposePlan) -> int:
        values = list(range(image.rows * image.cols))
        for row in apply_plan(image, values):
            typer.echo(" ".join(str(value) for value in row))
        return 0


class TransposeTool(_ConfiguredTool):
    """Transforms a row-major tensor layout into its transpose."""

    name = "transpose"

    def declare_options(self) -> OptionSchema:
        return OptionSchema(
            title=f"{self.name} Options",
            options=(
                OptionSpec("rows", int, 2, "Rows in the input layout.", minimum=1),
                OptionSpec("cols", int, 3, "Columns in the input layout.", minimum=1),
            ),
        )

    def build_work(self) -> TransposeWork:
        options, config = self._require_configured()
        return TransposeWork(rows=options["rows"], cols=options["cols"], config=config)


def register_builtin_tools(registry: ToolRegistry) -> None:
    """Register every tool shipped with the driver."""
    registry.register(DescribeTool.name, DescribeTool)
    registry.register(TransposeTool.name, TransposeTool)
