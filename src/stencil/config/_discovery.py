"""Config file discovery.

This module locates the project config file by searching upward through the
directory tree for ``stencil.toml``, and determines the platform-specific
user config path.
"""

from pathlib import Path
from typing import Any

import platformdirs

from ._defaults import DEFAULT_CONFIG
from ._models import ConfigSource, ConfigSourceName

PROJECT_CONFIG_NAME = "stencil.toml"


def find_project_config(start: Path | None = None) -> Path | None:
    """Find the nearest project config file.

    Searches from the starting directory upward through parent directories
    until a directory containing ``stencil.toml`` is found, or the filesystem
    root is reached.

    Args:
        start: Directory to start searching from. Defaults to the current
            working directory.

    Returns:
        Path to the config file, or None if there is none.

    Examples:
        >>> path = find_project_config(Path("/path/to/site/templates"))
    """
    current = (start or Path.cwd()).resolve()

    while True:
        candidate = current / PROJECT_CONFIG_NAME
        if _file_exists(candidate):
            return candidate
        parent = current.parent
        if parent == current:  # Reached filesystem root
            return None
        current = parent


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/stencil/config.toml``
    - macOS: ``~/Library/Application Support/stencil/config.toml``
    - Windows: ``%APPDATA%\stencil\config.toml``

    The path is returned regardless of whether the file exists.
    """
    return platformdirs.user_config_path("stencil") / "config.toml"


def _file_exists(path: Path) -> bool:
    """Check if a file exists, treating permission errors as absent."""
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    start: Path | None = None,
    *,
    config_path: Path | None = None,
    include_env: bool = True,
    overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    Args:
        start: Directory the project config search starts from.
        config_path: Explicit project config file; skips the upward search.
        include_env: Include environment variables as a source.
        overrides: Explicit overrides (from the command line).

    Returns:
        ConfigSource objects in precedence order (highest first). File
        sources that don't exist are included with exists=False.
    """
    sources: list[ConfigSource] = []

    if overrides is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.CLI,
                path=None,
                exists=bool(overrides),
                values=overrides,
            )
        )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Values parsed during loading
                values={},
            )
        )

    project_path = config_path if config_path is not None else find_project_config(start)
    if project_path is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.PROJECT,
                path=project_path,
                exists=_file_exists(project_path),
                values={},
            )
        )

    user_path = get_user_config_path()
    sources.append(
        ConfigSource(
            name=ConfigSourceName.USER,
            path=user_path,
            exists=_file_exists(user_path),
            values={},
        )
    )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
