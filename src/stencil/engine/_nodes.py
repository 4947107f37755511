"""Template node types.

The node sequence is flat. Control flow lives inside the code of
consecutive statement nodes and is resolved by the code generator.
"""

from dataclasses import dataclass

from ._tokens import SourcePosition


@dataclass(frozen=True, slots=True)
class TextNode:
    """Literal text, output verbatim."""

    text: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpressionNode:
    """An expression whose value is output, escaped or raw."""

    code: str
    escape: bool
    position: SourcePosition
    trim_after: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class StatementNode:
    """Code spliced into the render body, producing no output itself."""

    code: str
    position: SourcePosition
    trim_after: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class IncludeNode:
    """An ``include(path[, locals])`` directive.

    Attributes:
        path_expr: Python expression evaluating to the template name.
        locals_expr: Python expression evaluating to a mapping, or None.
        escape: Whether the included output is escaped.
        code: The directive as written.
    """

    path_expr: str
    locals_expr: str | None
    escape: bool
    code: str
    position: SourcePosition
    trim_after: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class CommentNode:
    """A comment; dropped by the code generator."""

    text: str
    position: SourcePosition
    trim_after: bool = False


type TagNode = ExpressionNode | StatementNode | IncludeNode | CommentNode
type Node = TextNode | TagNode
