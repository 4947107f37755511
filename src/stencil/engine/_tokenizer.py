"""Tokenizer for embedded-code templates.

Splits template source into literal text and tags. Only tag boundaries are
recognised; tag bodies are opaque code.

Default tag syntax:

    <%= expr %>   escaped output
    <%- expr %>   raw output
    <%  code %>   statement
    <%# text %>   comment
    <%%           literal "<%"
    -%>           close a tag and drop the newline right after it
"""

from dataclasses import dataclass
from functools import cached_property

from stencil.exceptions import UnterminatedTagError

from ._tokens import LineIndex, Token, TokenKind

_TYPE_MARKERS: dict[str, TokenKind] = {
    "=": TokenKind.TAG_OPEN_ESCAPED,
    "-": TokenKind.TAG_OPEN_RAW,
    "#": TokenKind.TAG_OPEN_COMMENT,
}

_TRIM_MARKER = "-"


@dataclass(frozen=True)
class TagSyntax:
    """Characters that make up the tag markers.

    Attributes:
        open: Character that starts the open marker.
        close: Character that ends the close marker.
        delimiter: Character between the brackets and the tag body.
    """

    open: str = "<"
    close: str = ">"
    delimiter: str = "%"

    def __post_init__(self) -> None:
        for attr in ("open", "close", "delimiter"):
            value = getattr(self, attr)
            if len(value) != 1:
                msg = f"Tag syntax '{attr}' must be a single character, got {value!r}"
                raise ValueError(msg)
        if self.delimiter in _TYPE_MARKERS or self.delimiter == _TRIM_MARKER:
            msg = f"Tag delimiter {self.delimiter!r} collides with a tag type marker"
            raise ValueError(msg)

    @cached_property
    def open_marker(self) -> str:
        """The marker that opens a tag, ``<%`` by default."""
        return self.open + self.delimiter

    @cached_property
    def close_marker(self) -> str:
        """The marker that closes a tag, ``%>`` by default."""
        return self.delimiter + self.close


DEFAULT_SYNTAX = TagSyntax()


def tokenize(
    source: str,
    syntax: TagSyntax = DEFAULT_SYNTAX,
    *,
    name: str | None = None,
) -> list[Token]:
    """Split template source into tokens.

    Every open token is immediately followed by its close token. The literal
    escape produces a literal token holding the open marker and never enters
    a tag.

    Args:
        source: Template source text.
        syntax: Tag marker characters.
        name: Template name, used in error messages.

    Returns:
        Tokens in source order.

    Raises:
        UnterminatedTagError: If the source ends inside a tag.
    """
    open_marker = syntax.open_marker
    close_marker = syntax.close_marker
    index = LineIndex(source)
    tokens: list[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        start = source.find(open_marker, pos)
        if start < 0:
            tokens.append(Token(TokenKind.LITERAL, source[pos:], index.position(pos)))
            break

        if start > pos:
            tokens.append(
                Token(TokenKind.LITERAL, source[pos:start], index.position(pos))
            )

        after = start + len(open_marker)
        type_char = source[after : after + 1]

        if type_char == syntax.delimiter:
            tokens.append(Token(TokenKind.LITERAL, open_marker, index.position(start)))
            pos = after + 1
            continue

        kind = _TYPE_MARKERS.get(type_char, TokenKind.TAG_OPEN_STATEMENT)
        body_start = after + 1 if type_char in _TYPE_MARKERS else after

        end = source.find(close_marker, body_start)
        if end < 0:
            position = index.position(start)
            msg = f"Unterminated tag: {open_marker} has no closing {close_marker}"
            raise UnterminatedTagError(
                msg,
                template=name,
                fragment=source[start : start + 40],
                line=position.line,
                column=position.column,
            )

        close_start = end
        if end > body_start and source[end - 1] == _TRIM_MARKER:
            close_start = end - 1

        close_end = end + len(close_marker)
        tokens.append(
            Token(kind, source[body_start:close_start], index.position(start))
        )
        tokens.append(
            Token(
                TokenKind.TAG_CLOSE,
                source[close_start:close_end],
                index.position(close_start),
            )
        )
        pos = close_end

    return tokens
