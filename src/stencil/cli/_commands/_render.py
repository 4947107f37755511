# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The render command."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter

from stencil.cli._context import CLIContext
from stencil.config import Config, parse_string_value, set_nested_key
from stencil.engine import Engine
from stencil.exceptions import StencilError
from stencil.loaders import FileSystemLoader

from ._shared import (
    ExitCode,
    FormattableData,
    exit_code_for,
    exit_with_error,
    exit_with_success,
    load_data_file,
)


def build_loader(config: Config, roots: list[Path] | None) -> FileSystemLoader:
    """Create a file loader searching ``roots`` or the configured paths."""
    return FileSystemLoader(
        roots or config.loader.search_paths,
        extensions=config.loader.extensions,
        encoding=config.loader.encoding,
    )


def build_context(
    context_file: Path | None, assignments: list[str] | None
) -> FormattableData:
    """Build the render context from a data file and KEY=VALUE assignments.

    Assignments are applied after the file, so they win. Dotted keys create
    nested mappings.
    """
    data: FormattableData = {}
    if context_file is not None:
        try:
            data = load_data_file(context_file)
        except OSError as e:
            exit_with_error(f"Cannot read context file: {e}", ExitCode.IO_ERROR)
        except ValueError as e:
            exit_with_error(str(e), ExitCode.IO_ERROR)

    for assignment in assignments or []:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            exit_with_error(
                f"Invalid --set value {assignment!r}, expected KEY=VALUE",
                ExitCode.CONFIG_ERROR,
            )
        set_nested_key(data, key.strip(), parse_string_value(value))

    return data


def render(
    template: str,
    /,
    *,
    context: Annotated[
        Path | None,
        Parameter(name=["--context", "-c"], help="JSON, YAML or TOML context file"),
    ] = None,
    set_values: Annotated[
        list[str] | None,
        Parameter(name=["--set", "-s"], help="Context value as KEY=VALUE"),
    ] = None,
    root: Annotated[
        list[Path] | None,
        Parameter(name=["--root", "-r"], help="Template search directory"),
    ] = None,
    output: Annotated[
        Path | None,
        Parameter(name=["--output", "-o"], help="Write output to a file"),
    ] = None,
) -> None:
    """Render a template

    Loads TEMPLATE through the search directories and renders it against
    the given context. Output goes to stdout unless --output is given.

    Args:
        template: Template name relative to a search directory.
        context: Context data file.
        set_values: Context values; repeat for several.
        root: Search directories; repeat for several. Defaults to
            loader.search_paths from the configuration.
        output: Output file.
    """
    ctx = CLIContext.get_current()
    data = build_context(context, set_values)

    try:
        loader = build_loader(ctx.config, root)
        engine = Engine(loader, config=ctx.config, logger=ctx.logger)
        text = engine.render_file(template, data)
    except StencilError as e:
        exit_with_error(str(e), exit_code_for(e))

    if output is None:
        print(text, end="")
        raise SystemExit(ExitCode.SUCCESS)

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding=ctx.config.loader.encoding)
    except OSError as e:
        exit_with_error(f"Cannot write output: {e}", ExitCode.IO_ERROR)

    if ctx.verbose:
        exit_with_success(f"Wrote {output}")
    raise SystemExit(ExitCode.SUCCESS)
