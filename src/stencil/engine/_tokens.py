"""Token types produced by the tokenizer."""

import bisect
import re
from dataclasses import dataclass, field
from enum import StrEnum


class TokenKind(StrEnum):
    """Kinds of tokens in a template source."""

    LITERAL = "literal"
    TAG_OPEN_ESCAPED = "tag_open_escaped"
    TAG_OPEN_RAW = "tag_open_raw"
    TAG_OPEN_STATEMENT = "tag_open_statement"
    TAG_OPEN_COMMENT = "tag_open_comment"
    TAG_CLOSE = "tag_close"

    @property
    def is_open(self) -> bool:
        """Whether this kind opens a tag."""
        return self.name.startswith("TAG_OPEN_")


@dataclass(frozen=True, slots=True)
class SourcePosition:
    """Position of a token in the template source.

    Attributes:
        line: Line number, starting at 1.
        column: Column number, starting at 1.
        offset: Character offset, starting at 0.
    """

    line: int
    column: int
    offset: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class Token:
    """A token with its source position.

    For literal tokens ``content`` is the text to output. For open tokens it
    is the tag body, and for close tokens the close marker as written.
    """

    kind: TokenKind
    content: str
    position: SourcePosition

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.content!r}, {self.position})"


@dataclass(slots=True)
class LineIndex:
    """Maps character offsets in a source to line and column numbers."""

    source: str
    _newlines: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._newlines = [m.start() for m in re.finditer("\n", self.source)]

    def position(self, offset: int) -> SourcePosition:
        """Return the position of the character at ``offset``."""
        line_index = bisect.bisect_left(self._newlines, offset)
        line_start = self._newlines[line_index - 1] + 1 if line_index else 0
        return SourcePosition(
            line=line_index + 1, column=offset - line_start + 1, offset=offset
        )
