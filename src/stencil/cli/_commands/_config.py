# pyright: reportUnusedCallResult=false
# ruff: noqa: A002
"""Config commands for viewing Stencil configuration."""

from typing import Annotated, Any

from cyclopts import App, Parameter

from stencil.cli._context import CLIContext, OutputFormat

from ._shared import ExitCode, exit_with_error, format_json, format_toml

app = App(
    name="config",
    help="Inspect configuration",
    help_on_error=True,
)


@app.command(name="show")
def _show(
    *,
    format: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (toml, json)"),
    ] = OutputFormat.TOML,
    section: Annotated[
        str | None,
        Parameter(name=["--section"], help="Show one section (engine, loader, logging)"),
    ] = None,
    no_defaults: Annotated[
        bool,
        Parameter(name="--no-defaults", help="Exclude default values"),
    ] = False,
) -> None:
    """Display merged configuration

    Shows the configuration merged from defaults, the user config file,
    the project stencil.toml, STENCIL_* environment variables and the
    command line.

    Args:
        format: Output format (toml, json).
        section: Specific section to show.
        no_defaults: Exclude default values from output.
    """
    config = CLIContext.get_current().config
    data: dict[str, Any] = config.to_dict(include_defaults=not no_defaults)

    if section:
        if section not in type(config).model_fields:
            exit_with_error(f"Section '{section}' not found", ExitCode.CONFIG_ERROR)
        data = {section: data.get(section, {})}

    match format:
        case OutputFormat.JSON:
            output = format_json(data)
        case _:
            output = format_toml(data)

    print(output.rstrip())
    raise SystemExit(ExitCode.SUCCESS)


@app.command(name="sources")
def _sources() -> None:
    """List configuration sources in precedence order"""
    config = CLIContext.get_current().config
    for source in config.sources:
        location = str(source.path) if source.path is not None else "-"
        status = "found" if source.exists else "missing"
        print(f"{source.name.value:<8} {status:<8} {location}")
    raise SystemExit(ExitCode.SUCCESS)
