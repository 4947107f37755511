# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""The check command."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.markup import escape

from stencil.cli._context import CLIContext
from stencil.engine import Engine
from stencil.exceptions import StencilError

from ._render import build_loader
from ._shared import ExitCode, exit_code_for, exit_with_error, get_error_console


def check(
    *templates: str,
    root: Annotated[
        list[Path] | None,
        Parameter(name=["--root", "-r"], help="Template search directory"),
    ] = None,
) -> None:
    """Compile templates and report errors

    Every template is compiled; nothing is rendered. With no TEMPLATES,
    every file under the search directories is checked. The exit code is
    that of the first failing template.

    Args:
        templates: Template names relative to a search directory.
        root: Search directories; repeat for several.
    """
    ctx = CLIContext.get_current()
    error_console = get_error_console()
    loader = build_loader(ctx.config, root)
    try:
        engine = Engine(loader, config=ctx.config, logger=ctx.logger)
    except StencilError as e:
        exit_with_error(str(e), exit_code_for(e), console=error_console)

    names = list(templates) or loader.list_templates()
    exit_code = ExitCode.SUCCESS

    for name in names:
        try:
            engine.get_template(name)
        except StencilError as e:
            error_console.print(f"[red]FAIL[/red] {escape(str(e))}", highlight=False)
            if exit_code == ExitCode.SUCCESS:
                exit_code = exit_code_for(e)
        else:
            if ctx.verbose:
                print(f"ok   {name}")

    if exit_code == ExitCode.SUCCESS:
        print(f"{len(names)} template(s) OK")
    raise SystemExit(exit_code)
