"""Stencil: embedded-Python templates.

Example:
    >>> import stencil
    >>> stencil.render("<% for n in items: %><%= n %>,<% end %>", {"items": [1, 2]})
    '1,2,'
"""

from collections.abc import Mapping
from pathlib import Path

from stencil.config import Config
from stencil.engine import CompiledTemplate, Engine, TagSyntax, TemplateCache
from stencil.exceptions import (
    CompileError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    IncludeDepthExceededError,
    RuntimeEvaluationError,
    StencilError,
    TemplateError,
    TemplateNotFoundError,
    TemplateTooLargeError,
    UnterminatedTagError,
)
from stencil.loaders import (
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    TemplateLoader,
    TemplateSource,
)

__all__ = [
    "CompileError",
    "CompiledTemplate",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DictLoader",
    "Engine",
    "FileSystemLoader",
    "FunctionLoader",
    "IncludeDepthExceededError",
    "RuntimeEvaluationError",
    "StencilError",
    "TagSyntax",
    "TemplateCache",
    "TemplateError",
    "TemplateLoader",
    "TemplateNotFoundError",
    "TemplateSource",
    "TemplateTooLargeError",
    "UnterminatedTagError",
    "render",
    "render_file",
]


def render(
    source: str,
    context: Mapping[str, object] | None = None,
    *,
    loader: TemplateLoader | None = None,
    config: Config | None = None,
) -> str:
    """Render template source with a throwaway engine.

    Args:
        source: Template text.
        context: Names available to template code.
        loader: Loader for includes.
        config: Engine configuration.

    Returns:
        The rendered text.
    """
    return Engine(loader, config=config).render(source, context)


def render_file(
    path: str | Path,
    context: Mapping[str, object] | None = None,
    *,
    config: Config | None = None,
) -> str:
    """Render a template file with a throwaway engine.

    The file's directory becomes the search path, so includes resolve
    next to it.

    Args:
        path: Path of the template file.
        context: Names available to template code.
        config: Engine configuration; its loader settings supply the
            encoding and extensions.

    Returns:
        The rendered text.
    """
    template_path = Path(path).resolve()
    effective = config if config is not None else Config()
    loader = FileSystemLoader(
        [template_path.parent],
        extensions=effective.loader.extensions,
        encoding=effective.loader.encoding,
    )
    return Engine(loader, config=effective).render_file(template_path.name, context)
