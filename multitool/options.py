"""Option schemas and the strict second-pass parse."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import click

from multitool.selection import DEFAULT_PROG_NAME

SUPPORTED_OPTION_TYPES = (bool, int, float, str)
RESERVED_OPTION_DESTS = frozenset({"help", "tool_name", "tool_name_flag"})


class SchemaConflictError(ValueError):
    """Raised when two option schemas declare the same option name."""

    def __init__(self, names: Sequence[str], *, title: str) -> None:
        joined = ", ".join(f"--{name}" for name in names)
        super().__init__(f"{title} redeclare options already in use: {joined}.")
        self.names = tuple(names)


class InvalidOptionError(ValueError):
    """Raised when the strict parse meets an undeclared or malformed option."""


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """Declaration of one command-line option."""

    name: str
    value_type: type = str
    default: Any = None
    help: str = ""
    minimum: int | float | None = None

    def __post_init__(self) -> None:
        if not self.name or self.name.startswith("-"):
            raise ValueError(
                f"Option name must be non-empty without leading dashes, got '{self.name}'."
            )
        if self.value_type not in SUPPORTED_OPTION_TYPES:
            raise ValueError(f"Unsupported type {self.value_type!r} for option --{self.name}.")

    @property
    def dest(self) -> str:
        """Python identifier the parsed value is stored under."""
        return self.name.replace("-", "_")

    def to_click_option(self) -> click.Option:
        """Build the click option for this declaration."""
        decls = [f"--{self.name}", self.dest]
        if self.value_type is bool:
            return click.Option(decls, is_flag=True, default=bool(self.default), help=self.help)

        param_type: click.ParamType
        if self.minimum is not None and self.value_type is int:
            param_type = click.IntRange(min=int(self.minimum))
        elif self.minimum is not None and self.value_type is float:
            param_type = click.FloatRange(min=float(self.minimum))
        else:
            param_type = click.types.convert_type(self.value_type)
        return click.Option(
            decls,
            type=param_type,
            default=self.default,
            show_default=self.default not in (None, ""),
            help=self.help,
        )


@dataclass(frozen=True, slots=True)
class OptionSchema:
    """Titled, ordered collection of option declarations."""

    title: str
    options: tuple[OptionSpec, ...] = ()

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self.options)

    def names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.options)

    def merge(self, other: OptionSchema, *, title: str = "All Options") -> OptionSchema:
        """Return the union of both schemas, refusing any shared option."""
        taken = {spec.dest for spec in self.options}
        conflicts = [spec.name for spec in other.options if spec.dest in taken]
        if conflicts:
            raise SchemaConflictError(conflicts, title=other.title)
        return OptionSchema(title=title, options=self.options + other.options)


class ParsedOptions(Mapping[str, Any]):
    """Read-only option values keyed by option name, e.g. ``options["save-exe"]``."""

    def __init__(self, tool_name: str, values: Mapping[str, Any]) -> None:
        self.tool_name = tool_name
        self._values = dict(values)

    def __getitem__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError as error:
            raise KeyError(
                f"Option '--{name}' is not declared by the general options "
                f"or by tool '{self.tool_name}'."
            ) from error

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParsedOptions(tool_name={self.tool_name!r}, values={self._values!r})"


GENERAL_OPTIONS = OptionSchema(
    title="General Options",
    options=(
        OptionSpec(
            "model",
            bool,
            False,
            "If set then use the simulated backend instead of hardware.",
        ),
        OptionSpec("ipus", int, 1, "Number of devices to use.", minimum=1),
        OptionSpec(
            "save-exe",
            str,
            "",
            "Save the executable image after compilation using this name (prefix).",
        ),
        OptionSpec(
            "load-exe",
            str,
            "",
            "Load a previously saved executable image with this name (prefix) "
            "and skip graph and program construction.",
        ),
        OptionSpec(
            "compile-only",
            bool,
            False,
            "If set and save-exe is also set then exit after compiling and saving the image.",
        ),
        OptionSpec(
            "defer-attach",
            bool,
            False,
            "If false (default) then a device is reserved before compilation, "
            "otherwise the device is not acquired until the program is ready to run.",
        ),
    ),
)


class _SectionedCommand(click.Command):
    """Click command whose help lists general and tool options separately."""

    def __init__(
        self,
        *args: Any,
        sections: Sequence[tuple[str, frozenset[str]]],
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.sections = tuple(sections)

    def format_options(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        params = self.get_params(ctx)
        for title, dests in self.sections:
            records = []
            for param in params:
                if param.name not in dests:
                    continue
                record = param.get_help_record(ctx)
                if record is not None:
                    records.append(record)
            if records:
                with formatter.section(title):
                    formatter.write_dl(records)


def merge_tool_schema(tool_schema: OptionSchema) -> OptionSchema:
    """Return the general options followed by ``tool_schema``."""
    reserved = sorted(spec.name for spec in tool_schema if spec.dest in RESERVED_OPTION_DESTS)
    if reserved:
        raise SchemaConflictError(reserved, title=tool_schema.title)
    return GENERAL_OPTIONS.merge(tool_schema)


def build_command(
    tool_name: str,
    tool_schema: OptionSchema,
    merged: OptionSchema,
) -> click.Command:
    """Build the strict parser for ``merged``, the result of ``merge_tool_schema``."""
    general_dests = frozenset(spec.dest for spec in GENERAL_OPTIONS) | {"help", "tool_name_flag"}
    tool_dests = frozenset(spec.dest for spec in tool_schema)
    params: list[click.Parameter] = [
        click.Argument(["tool_name"], required=False, metavar=tool_name),
        click.Option(["--tool-name", "tool_name_flag"], help="Choose the tool to be executed."),
    ]
    params.extend(spec.to_click_option() for spec in merged)
    return _SectionedCommand(
        tool_name,
        params=params,
        sections=[(GENERAL_OPTIONS.title, general_dests), (tool_schema.title, tool_dests)],
        help=f"Run the '{tool_name}' tool.",
    )


def parse_options(
    args: Sequence[str],
    tool_name: str,
    tool_schema: OptionSchema,
    *,
    prog: str = DEFAULT_PROG_NAME,
) -> ParsedOptions:
    """Parse ``args`` against the general options and the tool's own options.

    ``--help`` prints the merged help and raises ``click.exceptions.Exit`` with
    status 0 before any value is validated.
    """
    merged = merge_tool_schema(tool_schema)
    command = build_command(tool_name, tool_schema, merged)
    try:
        ctx = command.make_context(prog, list(args))
    except click.ClickException as error:
        raise InvalidOptionError(error.format_message()) from error

    if ctx.params["tool_name"] is not None and ctx.params["tool_name_flag"] is not None:
        raise InvalidOptionError(f"Got unexpected extra argument ({ctx.params['tool_name']}).")

    return ParsedOptions(
        tool_name=tool_name,
        values={spec.name: ctx.params[spec.dest] for spec in merged},
    )
