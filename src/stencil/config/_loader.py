# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Raw configuration data: TOML files, environment variables and merging.

Everything here works on plain dicts. Validation happens once the layers
are merged, in ``Config``.
"""

import contextlib
import copy
import json
import os
import tomllib
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from stencil.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pathlib import Path

ENV_PREFIX = "STENCIL_"

# Share the prefix but are not configuration keys.
_RESERVED_ENV_KEYS = frozenset({"DEBUG"})

_TRUE_FALSE = {"true": True, "false": False}


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read one TOML configuration file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigLoadError: If the file is not valid TOML. The error carries the
            line and column reported by the parser.
    """
    with path.open("rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Failed to parse TOML file: {e}"
            raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e


def deep_merge(
    base: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    override: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return ``base`` with ``override`` layered on top.

    Tables merge key by key; any other value in ``override``, lists
    included, replaces the one in ``base``. The result shares no mutable
    state with either input.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect configuration values from ``STENCIL_*`` environment variables.

    A double underscore separates table and key, so
    ``STENCIL_ENGINE__CACHE_SIZE=8`` becomes ``{"engine": {"cache_size": 8}}``.
    Values go through ``parse_string_value``.

    Args:
        prefix: Variable name prefix.
        environ: Variables to read instead of ``os.environ``.
    """
    values: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for name, raw in (os.environ if environ is None else environ).items():
        key = name.removeprefix(prefix)
        if key == name or not key or key in _RESERVED_ENV_KEYS:
            continue
        set_nested_key(values, key.lower().replace("__", "."), parse_string_value(raw))
    return values


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Turn a string from the environment or ``--set`` into a typed value.

    ``true``/``false`` in any case are booleans. Text without a dot is tried
    as an int and text with one as a float. Bracketed text is tried as a
    JSON array or object. Anything else stays a string.

    Examples:
        >>> parse_string_value("TRUE")
        True
        >>> parse_string_value("42")
        42
        >>> parse_string_value("3.14")
        3.14
        >>> parse_string_value('{"a": [1]}')
        {'a': [1]}
        >>> parse_string_value("1.2.3")
        '1.2.3'
    """
    if value.lower() in _TRUE_FALSE:
        return _TRUE_FALSE[value.lower()]

    number = float if "." in value else int
    with contextlib.suppress(ValueError):
        return number(value)

    if value[:1] + value[-1:] in ("[]", "{}"):
        with contextlib.suppress(json.JSONDecodeError):
            return json.loads(value)

    return value


def set_nested_key(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Assign ``value`` at a dotted path, creating tables along the way.

    A non-table value sitting on the path is replaced by a table.

    Example:
        >>> data = {"logging": 1}
        >>> set_nested_key(data, "logging.level", "debug")
        >>> data
        {'logging': {'level': 'debug'}}
    """
    *tables, leaf = key_path.split(".")
    for table in tables:
        child = data.get(table)
        if not isinstance(child, dict):
            child = data[table] = {}
        data = child
    data[leaf] = value
