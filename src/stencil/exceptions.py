"""Stencil exceptions."""

from pathlib import Path
from typing import Any


class StencilError(Exception):
    """Base exception for Stencil errors."""


# =============================================================================
# Template Exceptions
# =============================================================================


class TemplateError(StencilError):
    """Base exception for errors tied to a template source.

    The message passed in is kept as ``message``; ``str()`` of the exception
    prefixes it with the template name and source position when known.

    Attributes:
        message: Human-readable error message without location.
        template: Name of the template the error belongs to.
        fragment: The offending code fragment or path, when known.
        line: 1-based source line of the fragment, when known.
        column: 1-based source column of the fragment, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        template: str | None = None,
        fragment: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and source location context.

        Args:
            message: Human-readable error message.
            template: Name of the template the error belongs to.
            fragment: The offending code fragment or path.
            line: 1-based line number in the template source.
            column: 1-based column number in the template source.
        """
        self.message: str = message
        self.template: str | None = template
        self.fragment: str | None = fragment
        self.line: int | None = line
        self.column: int | None = column
        super().__init__(self._format())

    def _format(self) -> str:
        location = self.template or ""
        if self.line is not None:
            location = f"{location}:{self.line}" if location else f"line {self.line}"
            if self.column is not None:
                location = f"{location}:{self.column}"
        return f"{location}: {self.message}" if location else self.message


class UnterminatedTagError(TemplateError):
    """Raised when the source ends while a tag is still open."""


class CompileError(TemplateError):
    """Raised when the assembled template code is not valid Python.

    This includes unbalanced blocks: an ``end`` without an open block, or a
    block still open when the template ends.
    """


class TemplateNotFoundError(TemplateError, LookupError):
    """Raised when the loader cannot produce a template source.

    Attributes:
        name: The template name that was requested.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str,
        template: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and the requested template name.

        Args:
            message: Human-readable error message.
            name: The template name that could not be loaded.
            template: Name of the including template, if any.
            line: Line of the include in the including template.
            column: Column of the include in the including template.
        """
        self.name: str = name
        super().__init__(
            message, template=template, fragment=name, line=line, column=column
        )


class IncludeDepthExceededError(TemplateError, RecursionError):
    """Raised when include nesting passes the configured cap.

    Attributes:
        limit: The configured maximum include depth.
        chain: Template names from the outermost render to the failing include.
    """

    def __init__(
        self,
        message: str,
        *,
        limit: int,
        chain: tuple[str, ...],
        template: str | None = None,
    ) -> None:
        """Initialize with error message and include chain context.

        Args:
            message: Human-readable error message.
            limit: The configured maximum include depth.
            chain: Template names from the outermost render to the failing include.
            template: Name of the template whose include failed.
        """
        self.limit: int = limit
        self.chain: tuple[str, ...] = chain
        super().__init__(message, template=template, fragment=chain[-1] if chain else None)


class RuntimeEvaluationError(TemplateError):
    """Raised when a template fragment raises while rendering.

    Attributes:
        cause: The exception raised by the fragment.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException,
        template: str | None = None,
        fragment: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message, cause, and source location context."""
        self.cause: BaseException = cause
        super().__init__(
            message, template=template, fragment=fragment, line=line, column=column
        )


class TemplateTooLargeError(TemplateError, ValueError):
    """Raised when a template source exceeds the configured size limit.

    Attributes:
        size: Length of the rejected source in characters.
        limit: The configured maximum size in characters.
    """

    def __init__(
        self, message: str, *, size: int, limit: int, template: str | None = None
    ) -> None:
        """Initialize with error message and size context."""
        self.size: int = size
        self.limit: int = limit
        super().__init__(message, template=template)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(StencilError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source
