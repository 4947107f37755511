"""Include resolution: rendering partials from inside a template."""

import posixpath
from collections.abc import Callable, Mapping

from structlog.typing import FilteringBoundLogger

from stencil.exceptions import IncludeDepthExceededError
from stencil.utils import create_null_logger

from ._compiled import CompiledTemplate, IncludeFunction
from ._escape import EscapeFunction, escape_html

DEFAULT_MAX_INCLUDE_DEPTH = 50

_RELATIVE_PREFIXES = ("./", "../")


def resolve_include_name(path: str, parent: str | None) -> str:
    """Turn an include path into a template name.

    Paths starting with ``./`` or ``../`` are relative to the directory of
    the including template. Any other path is a template name as is.

    Examples:
        >>> resolve_include_name("./row.html", "pages/list.html")
        'pages/row.html'
        >>> resolve_include_name("../layout.html", "pages/list.html")
        'layout.html'
        >>> resolve_include_name("shared/nav.html", "pages/list.html")
        'shared/nav.html'
    """
    if parent is None or not path.startswith(_RELATIVE_PREFIXES):
        return path
    return posixpath.normpath(posixpath.join(posixpath.dirname(parent), path))


class IncludeResolver:
    """Renders partials for the include directive.

    The resolver does not load or compile anything itself. It asks
    ``get_template`` for the compiled partial, so loading and caching stay
    with the engine.
    """

    def __init__(
        self,
        get_template: Callable[[str], CompiledTemplate],
        *,
        max_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        escape: EscapeFunction = escape_html,
        builtins: Mapping[str, object] | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            get_template: Returns the compiled template for a name.
            max_depth: Maximum include nesting depth.
            escape: Escape function used by partials.
            builtins: Builtins namespace for partial code, None for the
                regular builtins.
            logger: Structured logger for include events.
        """
        self.get_template: Callable[[str], CompiledTemplate] = get_template
        self.max_depth: int = max_depth
        self.escape: EscapeFunction = escape
        self.builtins: Mapping[str, object] | None = builtins
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else create_null_logger()
        )

    def include_function(self, chain: tuple[str, ...]) -> IncludeFunction:
        """Return the include callback for a template executing at ``chain``.

        Args:
            chain: Template names from the outermost render down to the
                template that will call the callback.
        """

        def render_include(
            path: object, locals_: object, caller_context: Mapping[str, object]
        ) -> str:
            return self.render(path, locals_, caller_context, chain=chain)

        return render_include

    def render(
        self,
        path: object,
        locals_: object,
        caller_context: Mapping[str, object],
        *,
        chain: tuple[str, ...],
    ) -> str:
        """Render one partial.

        The partial sees a shallow copy of the caller's context overlaid
        with ``locals_``; locals win on key collisions.

        Args:
            path: Include path as evaluated by the template.
            locals_: Mapping of extra names, or None.
            caller_context: Context of the including template.
            chain: Template names from the outermost render down to the
                including template.

        Returns:
            The partial's output.

        Raises:
            TypeError: If the path is not a string or locals is not a mapping.
            IncludeDepthExceededError: If nesting passes ``max_depth``.
            TemplateNotFoundError: If the partial cannot be loaded.
        """
        if not isinstance(path, str):
            msg = f"Include path must be a string, got {type(path).__name__}"
            raise TypeError(msg)
        if locals_ is not None and not isinstance(locals_, Mapping):
            msg = f"Include locals must be a mapping, got {type(locals_).__name__}"
            raise TypeError(msg)

        parent = chain[-1] if chain else None
        name = resolve_include_name(path, parent)
        depth = len(chain)
        if depth > self.max_depth:
            msg = f"Include depth exceeded the limit of {self.max_depth}"
            raise IncludeDepthExceededError(
                msg, limit=self.max_depth, chain=(*chain, name), template=parent
            )

        template = self.get_template(name)
        self._logger.debug(
            "include_resolved", template=name, parent=parent, depth=depth
        )

        context: dict[str, object] = dict(caller_context)
        if locals_ is not None:
            context.update(locals_)

        return template.execute(
            context,
            escape=self.escape,
            include=self.include_function((*chain, name)),
            builtins=self.builtins,
        )
