from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from rich.console import Console

from stencil.cli import CLIContext, create_app


@pytest.fixture
def stencil_cli(console: Console) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code.

    Arguments go through ``app.meta`` so global options such as --verbose
    and --config are parsed the same way as from the shell.
    """

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""

        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def cli_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path]:
    """Set up an isolated project directory for CLI commands.

    Creates:
        tmp_path/
            project/            # working directory
                templates/
                    hello.html
                    list.html
                    parts/item.html
            user_config/stencil/ # user config directory (empty)
    """
    project = tmp_path / "project"
    templates = project / "templates"
    (templates / "parts").mkdir(parents=True)
    (templates / "hello.html").write_text("Hello <%= name %>!\n")
    (templates / "list.html").write_text(
        "<% for item in items: -%>\n"
        "<%- include('./parts/item.html', item=item) %>\n"
        "<% end -%>\n"
    )
    (templates / "parts" / "item.html").write_text("* <%= item %>")

    user_dir = tmp_path / "user_config" / "stencil"
    user_dir.mkdir(parents=True)

    def mock_get_user_config_path() -> Path:
        return user_dir / "config.toml"

    monkeypatch.setattr(
        "stencil.config._discovery.get_user_config_path",
        mock_get_user_config_path,
    )
    monkeypatch.chdir(project)

    # Reset CLIContext after each test to avoid state leakage
    yield project

    CLIContext.reset()
