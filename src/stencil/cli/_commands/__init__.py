"""Stencil CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._check import check
from ._config import app as config_app
from ._render import render
from ._shared import ExitCode

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "ExitCode",
    "check",
    "config_app",
    "register_commands",
    "render",
]


def register_commands(app: App) -> None:
    app.command(render, name="render")
    app.command(check, name="check")
    app.command(config_app)
