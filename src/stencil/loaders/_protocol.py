"""Loader protocol and the template source record loaders return."""

import hashlib
from dataclasses import dataclass, field
from typing import Protocol, Self, runtime_checkable


def fingerprint_source(text: str) -> str:
    """Return the content fingerprint (SHA-256 hex digest) of template text."""
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


@dataclass(frozen=True, slots=True)
class TemplateSource:
    """A template's text as produced by a loader.

    Attributes:
        name: The name the template was requested by.
        text: The template source.
        fingerprint: SHA-256 hex digest of ``text``.
        origin: Where the text came from (such as a file path), for messages.
    """

    name: str
    text: str
    fingerprint: str = field(repr=False)
    origin: str | None = None

    @classmethod
    def from_text(cls, name: str, text: str, origin: str | None = None) -> Self:
        """Build a source record, computing the fingerprint."""
        return cls(
            name=name, text=text, fingerprint=fingerprint_source(text), origin=origin
        )


@runtime_checkable
class TemplateLoader(Protocol):
    """Host-side collaborator that turns template names into sources.

    Implementations raise ``TemplateNotFoundError`` when a name cannot be
    resolved. The engine converts any other exception raised here into
    ``TemplateNotFoundError`` as well.
    """

    def get_source(self, name: str) -> TemplateSource:
        """Return the source of the template called ``name``."""
        ...
