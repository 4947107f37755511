"""The engine facade: compile, cache and render templates."""

from collections.abc import Mapping

from structlog.typing import FilteringBoundLogger

from stencil.config import Config
from stencil.exceptions import (
    ConfigValidationError,
    TemplateError,
    TemplateNotFoundError,
    TemplateTooLargeError,
)
from stencil.loaders import FileSystemLoader, TemplateLoader
from stencil.utils import create_logger

from ._builder import build
from ._cache import TemplateCache, TemplateIdentity
from ._compiled import CompiledTemplate, compile_nodes
from ._escape import EscapeFunction, escape_html
from ._include import IncludeResolver
from ._parser import parse
from ._sandbox import SAFE_BUILTINS
from ._tokenizer import TagSyntax, tokenize

INLINE_TEMPLATE_NAME = "<string>"


class Engine:
    """Compiles and renders templates.

    Each engine owns its cache unless one is passed in, so independent
    engines never share compiled templates.

    Example:
        >>> engine = Engine()
        >>> engine.render("Hello <%= name %>!", {"name": "<World>"})
        'Hello &lt;World&gt;!'
    """

    def __init__(
        self,
        loader: TemplateLoader | None = None,
        *,
        config: Config | None = None,
        cache: TemplateCache | None = None,
        escape: EscapeFunction | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            loader: Source of named templates and includes. Without one,
                only inline sources render and includes fail.
            config: Configuration; defaults apply when omitted.
            cache: Compiled-template cache to use instead of a private one.
            escape: Escape function for escaped output. Defaults to HTML.
            logger: Structured logger. Built from ``config.logging`` when
                omitted.

        Raises:
            ConfigValidationError: If the configured tag syntax is invalid.
        """
        self.config: Config = config if config is not None else Config()
        engine_config = self.config.engine

        self.loader: TemplateLoader | None = loader
        if logger is None:
            logger = create_logger(
                level=self.config.logging.level.value,
                log_format=self.config.logging.format.value,
                log_file=self.config.logging.file,
            )
        self.logger: FilteringBoundLogger = logger
        if cache is None:
            cache = TemplateCache(
                max_entries=engine_config.cache_size or None, logger=self.logger
            )
        self.cache: TemplateCache = cache
        self.escape: EscapeFunction = escape if escape is not None else escape_html
        self.builtins: Mapping[str, object] | None = (
            SAFE_BUILTINS if engine_config.sandbox else None
        )

        try:
            self.syntax: TagSyntax = TagSyntax(
                open=engine_config.open_delimiter,
                close=engine_config.close_delimiter,
                delimiter=engine_config.delimiter,
            )
        except ValueError as e:
            msg = f"Invalid tag syntax: {e}"
            raise ConfigValidationError(
                msg,
                key="engine.delimiter",
                value=engine_config.delimiter,
                expected="a character other than '=', '-' or '#'",
            ) from e

        self._resolver: IncludeResolver = IncludeResolver(
            self.get_template,
            max_depth=engine_config.max_include_depth,
            escape=self.escape,
            builtins=self.builtins,
            logger=self.logger,
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        loader: TemplateLoader | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> Engine:
        """Build an engine with a file loader taken from ``config.loader``."""
        if loader is None:
            loader = FileSystemLoader(
                config.loader.search_paths,
                extensions=config.loader.extensions,
                encoding=config.loader.encoding,
            )
        return cls(loader, config=config, logger=logger)

    def _check_size(self, source: str, name: str) -> None:
        limit = self.config.engine.max_template_size
        if limit is not None and len(source) > limit:
            msg = f"Template is {len(source)} characters, limit is {limit}"
            raise TemplateTooLargeError(msg, size=len(source), limit=limit, template=name)

    def _compile(self, source: str, *, name: str, key: str) -> CompiledTemplate:
        try:
            nodes = build(parse(tokenize(source, self.syntax, name=name), name=name))
            template = compile_nodes(
                nodes, name=name, key=key, source_length=len(source)
            )
        except TemplateError as e:
            self.logger.info(
                "template_compile_failed",
                template=name,
                error=e.message,
                line=e.line,
                column=e.column,
            )
            raise
        self.logger.debug(
            "template_compiled",
            template=name,
            key=key,
            source_length=len(source),
        )
        return template

    def compile(self, source: str, *, name: str | None = None) -> CompiledTemplate:
        """Compile template source.

        Named sources go through the cache: compiling the same name and
        text again returns the cached template, and changed text replaces
        it. Unnamed sources are compiled on every call.

        Raises:
            TemplateTooLargeError: If the source exceeds the size limit.
            UnterminatedTagError: If a tag is never closed.
            CompileError: If the template code is invalid.
        """
        template_name = name if name is not None else INLINE_TEMPLATE_NAME
        self._check_size(source, template_name)
        identity = TemplateIdentity.for_source(template_name, source)
        if name is None:
            return self._compile(source, name=template_name, key=identity.key)
        return self.cache.get_or_compile(
            identity,
            lambda: self._compile(source, name=template_name, key=identity.key),
        )

    def get_template(self, name: str) -> CompiledTemplate:
        """Load a named template through the loader and compile it via the cache.

        Raises:
            TemplateNotFoundError: If there is no loader or it fails.
            TemplateTooLargeError: If the source exceeds the size limit.
            UnterminatedTagError: If a tag is never closed.
            CompileError: If the template code is invalid.
        """
        if self.loader is None:
            msg = "No template loader is configured"
            raise TemplateNotFoundError(msg, name=name)

        try:
            source = self.loader.get_source(name)
        except TemplateNotFoundError:
            raise
        except Exception as e:
            msg = f"Template {name!r} could not be loaded: {e}"
            raise TemplateNotFoundError(msg, name=name) from e

        self._check_size(source.text, name)
        identity = TemplateIdentity(name=name, fingerprint=source.fingerprint)
        return self.cache.get_or_compile(
            identity,
            lambda: self._compile(source.text, name=name, key=identity.key),
        )

    def execute(
        self,
        template: CompiledTemplate,
        context: Mapping[str, object] | None = None,
    ) -> str:
        """Render a compiled template with this engine's helpers.

        Raises:
            RuntimeEvaluationError: If template code raises.
            TemplateError: Errors from includes, unchanged.
        """
        try:
            return template.execute(
                context,
                escape=self.escape,
                include=self._resolver.include_function((template.name,)),
                builtins=self.builtins,
            )
        except TemplateError as e:
            self.logger.info(
                "template_render_failed",
                template=template.name,
                error=e.message,
                failed_in=e.template,
                line=e.line,
            )
            raise

    def render(
        self,
        source: str,
        context: Mapping[str, object] | None = None,
        *,
        name: str | None = None,
    ) -> str:
        """Compile and render template source.

        Args:
            source: Template text.
            context: Names available to template code. Not mutated.
            name: Template name; enables caching and relative includes.

        Returns:
            The rendered text.
        """
        return self.execute(self.compile(source, name=name), context)

    def render_file(
        self, name: str, context: Mapping[str, object] | None = None
    ) -> str:
        """Load, compile and render a named template.

        Args:
            name: Template name passed to the loader.
            context: Names available to template code. Not mutated.

        Returns:
            The rendered text.
        """
        return self.execute(self.get_template(name), context)
