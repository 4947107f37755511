"""In-memory and callable-backed loaders."""

from typing import TYPE_CHECKING

from stencil.exceptions import TemplateNotFoundError

from ._protocol import TemplateSource

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


class DictLoader:
    """Loads templates from a dictionary of name to source text.

    ``templates`` is a plain dict and may be changed after construction;
    the engine picks up changed sources on the next load.
    """

    def __init__(self, templates: Mapping[str, str] | None = None) -> None:
        self.templates: dict[str, str] = dict(templates or {})

    def get_source(self, name: str) -> TemplateSource:
        try:
            text = self.templates[name]
        except KeyError:
            msg = f"Template {name!r} not found"
            raise TemplateNotFoundError(msg, name=name) from None
        return TemplateSource.from_text(name, text, origin="<dict>")

    def list_templates(self) -> list[str]:
        return sorted(self.templates)


class FunctionLoader:
    """Adapts a ``load(name) -> str | None`` callable to the loader protocol.

    A None result means the template does not exist. Any exception raised
    by the callable is reported as TemplateNotFoundError, chained to the
    original.
    """

    def __init__(self, load: Callable[[str], str | None]) -> None:
        self.load: Callable[[str], str | None] = load

    def get_source(self, name: str) -> TemplateSource:
        try:
            text = self.load(name)
        except TemplateNotFoundError:
            raise
        except Exception as e:
            msg = f"Template {name!r} could not be loaded: {e}"
            raise TemplateNotFoundError(msg, name=name) from e
        if text is None:
            msg = f"Template {name!r} not found"
            raise TemplateNotFoundError(msg, name=name)
        return TemplateSource.from_text(name, text)
