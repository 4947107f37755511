# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models with typed access.

The Config model is frozen; build instances with the factory methods
``from_dict``, ``from_file`` and ``load`` rather than the constructor.
"""

import copy
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Self

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from stencil.exceptions import ConfigLoadError, ConfigValidationError

from ._defaults import DEFAULT_CONFIG
from ._loader import deep_merge, parse_env_vars, read_toml_file

if TYPE_CHECKING:
    from pathlib import Path

    from pydantic_core import ErrorDetails


class LogLevel(StrEnum):
    """Log level threshold values, most verbose first."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Configuration source names, highest precedence first."""

    CLI = "cli"
    ENV = "env"
    PROJECT = "project"
    USER = "user"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """A configuration source.

    Attributes:
        name: The source type identifier.
        path: Path to the config file, or None for non-file sources.
        exists: Whether the source exists (file exists, or values are present).
        values: Configuration values from this source.
    """

    name: ConfigSourceName
    path: Path | None
    exists: bool
    values: dict[str, Any]


class EngineConfig(BaseModel):
    """Engine configuration section.

    Attributes:
        max_include_depth: Maximum include nesting depth.
        max_template_size: Maximum template source length in characters;
            None disables the check.
        cache_size: Maximum number of compiled templates kept; 0 disables
            the bound.
        sandbox: Restrict template code to a safe set of builtins.
        open_delimiter: First character of the open marker.
        close_delimiter: Last character of the close marker.
        delimiter: Character between the brackets and the tag body.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_include_depth: int = Field(default=50, ge=1)
    max_template_size: int | None = Field(default=None, ge=1)
    cache_size: int = Field(default=512, ge=0)
    sandbox: bool = False
    open_delimiter: str = Field(default="<", min_length=1, max_length=1)
    close_delimiter: str = Field(default=">", min_length=1, max_length=1)
    delimiter: str = Field(default="%", min_length=1, max_length=1)


class LoaderConfig(BaseModel):
    """File loader configuration section.

    Attributes:
        search_paths: Directories searched for templates, in order. Relative
            paths resolve against the working directory.
        extensions: Suffixes tried when a name has no direct match.
        encoding: Text encoding of template files.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    search_paths: tuple[str, ...] = (".",)
    extensions: tuple[str, ...] = ()
    encoding: str = "utf-8"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty writes to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""


def _error_to_exception(
    error: ErrorDetails, source: str | None
) -> ConfigValidationError:
    """Convert the first Pydantic error into a ConfigValidationError."""
    key = ".".join(str(part) for part in error.get("loc", ()))
    ctx = error.get("ctx") or {}
    if "expected" in ctx:
        expected = str(ctx["expected"])
    elif "ge" in ctx:
        expected = f">= {ctx['ge']}"
    else:
        expected = str(error.get("msg", "valid value"))
    msg = f"Invalid configuration value for '{key}': {error.get('msg')}"
    return ConfigValidationError(
        msg,
        key=key,
        value=error.get("input"),
        expected=expected,
        source=source,
    )


class Config(BaseModel):
    """Stencil configuration.

    Example:
        >>> config = Config.from_dict({"engine": {"sandbox": True}})
        >>> config.engine.sandbox
        True
        >>> config.get("engine.max_include_depth")
        50
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    engine: EngineConfig = EngineConfig()
    loader: LoaderConfig = LoaderConfig()
    logging: LoggingConfig = LoggingConfig()

    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())

    @classmethod
    def _validated(
        cls,
        data: dict[str, Any],
        *,
        sources: tuple[ConfigSource, ...] = (),
        source: str | None = None,
    ) -> Self:
        try:
            config = cls.model_validate(deep_merge(DEFAULT_CONFIG, data))
        except ValidationError as e:
            raise _error_to_exception(e.errors()[0], source) from e
        config._sources = sources
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return cls._validated(data)

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a single TOML file merged over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        source = ConfigSource(
            name=ConfigSourceName.PROJECT, path=path, exists=True, values=data
        )
        return cls._validated(data, sources=(source,), source=str(path))

    @classmethod
    def load(
        cls,
        *,
        start: Path | None = None,
        config_path: Path | None = None,
        include_env: bool = True,
        overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources merge in precedence order
        (defaults -> user -> project -> env -> overrides).

        Args:
            start: Directory the project config search starts from. Defaults
                to the working directory.
            config_path: Explicit project config file. It must exist.
            include_env: Include ``STENCIL_*`` environment variables.
            overrides: Explicit overrides, highest precedence.

        Returns:
            Merged configuration object.

        Raises:
            ConfigLoadError: If a config file cannot be read or parsed.
            ConfigValidationError: If the merged config fails validation.
        """
        # Deferred import to avoid circular dependency
        from stencil.config._discovery import discover_sources  # noqa: PLC0415

        if config_path is not None and not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise ConfigLoadError(msg, path=config_path)

        sources = discover_sources(
            start,
            config_path=config_path,
            include_env=include_env,
            overrides=overrides,
        )

        merged: dict[str, Any] = {}
        loaded: list[ConfigSource] = []

        for source in reversed(sources):
            values: dict[str, Any] = {}
            if source.name == ConfigSourceName.ENV:
                values = parse_env_vars()
            elif source.path is not None:
                if source.exists:
                    try:
                        values = read_toml_file(source.path)
                    except OSError as e:
                        msg = f"Failed to read config file: {e}"
                        raise ConfigLoadError(msg, path=source.path) from e
            else:
                values = source.values

            loaded.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )
            if values:
                merged = deep_merge(merged, values)

        return cls._validated(merged, sources=tuple(reversed(loaded)))

    @property
    def sources(self) -> list[ConfigSource]:
        """The sources that contributed to this configuration, highest first."""
        return list(self._sources)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Examples:
            >>> config.get("logging.level")
            'warning'
            >>> config.get("nonexistent", "fallback")
            'fallback'
        """
        current: Any = self.to_dict()
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self, *, include_defaults: bool = True) -> dict[str, Any]:
        """Convert configuration to a plain dictionary.

        Args:
            include_defaults: If False, only values that differ from the
                defaults are included.
        """
        data = self.model_dump(mode="json")
        if include_defaults:
            return data
        return _diff_from_defaults(data, DEFAULT_CONFIG)

    def to_toml(self, *, include_defaults: bool = True) -> str:
        """Convert configuration to a TOML string.

        TOML has no null, so unset optional values are omitted.
        """
        return tomli_w.dumps(_drop_none(self.to_dict(include_defaults=include_defaults)))


def _diff_from_defaults(
    data: dict[str, Any],
    defaults: dict[str, Any],
) -> dict[str, Any]:
    """Extract values that differ from defaults."""
    result: dict[str, Any] = {}

    for key, value in data.items():
        if key not in defaults:
            result[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(defaults[key], dict):
            nested_diff = _diff_from_defaults(value, defaults[key])
            if nested_diff:
                result[key] = nested_diff
        elif value != defaults[key]:
            result[key] = copy.deepcopy(value)

    return result


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _drop_none(value) if isinstance(value, dict) else value
        for key, value in data.items()
        if value is not None
    }
