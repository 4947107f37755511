"""Configuration loading for Stencil.

Configuration merges, highest precedence first: explicit overrides,
``STENCIL_*`` environment variables, the nearest ``stencil.toml``, the user
config file, and the built-in defaults.
"""

from ._defaults import DEFAULT_CONFIG
from ._discovery import (
    PROJECT_CONFIG_NAME,
    discover_sources,
    find_project_config,
    get_user_config_path,
)
from ._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    ConfigSource,
    ConfigSourceName,
    EngineConfig,
    LoaderConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "PROJECT_CONFIG_NAME",
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "EngineConfig",
    "LoaderConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "deep_merge",
    "discover_sources",
    "find_project_config",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "set_nested_key",
]
