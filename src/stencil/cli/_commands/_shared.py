# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

Exit codes, output formatters and error reporting used by every command.
"""

import tomllib
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

from rich.markup import escape

from stencil.exceptions import (
    ConfigError,
    StencilError,
    TemplateNotFoundError,
)

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

FormattableData = dict[str, Any]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "exit_with_success",
    "format_json",
    "format_toml",
    "get_error_console",
    "load_data_file",
]


class ExitCode(IntEnum):
    """Standard exit codes for Stencil CLI commands."""

    SUCCESS = 0
    TEMPLATE_ERROR = 1
    NOT_FOUND = 2
    CONFIG_ERROR = 3
    IO_ERROR = 4


def exit_code_for(error: StencilError) -> ExitCode:
    """Map an engine or config error to its exit code."""
    if isinstance(error, TemplateNotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(error, ConfigError):
        return ExitCode.CONFIG_ERROR
    return ExitCode.TEMPLATE_ERROR


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON."""
    import orjson

    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_toml(data: FormattableData) -> str:
    """Format data as TOML, leaving out None values TOML cannot express."""
    import tomli_w

    def _drop_none(value: FormattableData) -> FormattableData:
        return {
            k: _drop_none(v) if isinstance(v, dict) else v
            for k, v in value.items()
            if v is not None
        }

    return tomli_w.dumps(_drop_none(data))


def load_data_file(path: Path) -> FormattableData:
    """Read a JSON, YAML or TOML file chosen by its suffix.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content cannot be parsed or is not a mapping.
    """
    suffix = path.suffix.lower()
    raw = path.read_bytes()

    data: object
    match suffix:
        case ".json":
            import orjson

            try:
                data = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                msg = f"Invalid JSON in {path}: {e}"
                raise ValueError(msg) from e
        case ".yaml" | ".yml":
            import yaml

            try:
                data = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                msg = f"Invalid YAML in {path}: {e}"
                raise ValueError(msg) from e
        case ".toml":
            try:
                data = tomllib.loads(raw.decode("utf-8"))
            except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
                msg = f"Invalid TOML in {path}: {e}"
                raise ValueError(msg) from e
        case _:
            msg = f"Unsupported data file type {suffix!r} (use .json, .yaml or .toml)"
            raise ValueError(msg)

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Top level of {path} must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.TEMPLATE_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}")
    raise SystemExit(code)


def exit_with_success(
    message: str | None = None,
    *,
    console: Console | None = None,
) -> Never:
    """Print an optional message to stderr and exit with SUCCESS.

    Raises:
        SystemExit: Always raised with ExitCode.SUCCESS (0).
    """
    if message is not None:
        if console is None:
            console = get_error_console()
        console.print(escape(message))
    raise SystemExit(ExitCode.SUCCESS)
