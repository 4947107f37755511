"""Node sequence builder.

Normalises the parser's flat node sequence before code generation:

- raw-output and statement tags holding ``include(path[, locals])`` become
  include nodes;
- the newline after a ``-%>`` close is dropped;
- adjacent text nodes are merged and empty ones removed.

Blocks are never paired here. An unbalanced ``if`` or a stray ``end`` is
left for the code generator to report.
"""

import ast
from dataclasses import dataclass

from ._nodes import (
    CommentNode,
    ExpressionNode,
    IncludeNode,
    Node,
    StatementNode,
    TextNode,
)

_INCLUDE_NAME = "include"


@dataclass(frozen=True, slots=True)
class IncludeCall:
    """Argument boundaries of a recognised include directive."""

    path_expr: str
    locals_expr: str | None


def match_include(code: str) -> IncludeCall | None:
    """Recognise ``include(path_expr[, locals_expr], **kwargs)`` call syntax.

    Only the call shape is inspected: the argument expressions are returned
    as written and evaluated later by the generated code. Keyword arguments
    and ``**mapping`` are folded into the locals expression, after any
    positional locals.

    Args:
        code: The body of a raw-output or statement tag.

    Returns:
        The path and locals expressions, or None if ``code`` is not a
        single include call.
    """
    stripped = code.strip()
    if not stripped.startswith(_INCLUDE_NAME):
        return None

    try:
        tree = ast.parse(stripped, mode="eval")
    except SyntaxError:
        return None

    call = tree.body
    if not (
        isinstance(call, ast.Call)
        and isinstance(call.func, ast.Name)
        and call.func.id == _INCLUDE_NAME
    ):
        return None

    args = call.args
    if not 1 <= len(args) <= 2 or any(isinstance(a, ast.Starred) for a in args):
        return None

    path_expr = ast.get_source_segment(stripped, args[0])
    if path_expr is None:
        return None

    positional_locals: str | None = None
    if len(args) == 2:
        positional_locals = ast.get_source_segment(stripped, args[1])
        if positional_locals is None:
            return None

    if not call.keywords:
        return IncludeCall(path_expr=path_expr, locals_expr=positional_locals)

    parts = [f"**({positional_locals})"] if positional_locals is not None else []
    for keyword in call.keywords:
        segment = ast.get_source_segment(stripped, keyword.value)
        if segment is None:
            return None
        if keyword.arg is None:
            parts.append(f"**({segment})")
        else:
            parts.append(f"{keyword.arg!r}: ({segment})")

    locals_expr = "{" + ", ".join(parts) + "}"
    return IncludeCall(path_expr=path_expr, locals_expr=locals_expr)


def _promote_include(node: Node) -> Node:
    if not isinstance(node, ExpressionNode | StatementNode):
        return node
    if isinstance(node, ExpressionNode) and node.escape:
        return node

    matched = match_include(node.code)
    if matched is None:
        return node
    return IncludeNode(
        path_expr=matched.path_expr,
        locals_expr=matched.locals_expr,
        escape=False,
        code=node.code,
        position=node.position,
        trim_after=node.trim_after,
    )


def _strip_leading_newline(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def build(nodes: list[Node]) -> list[Node]:
    """Normalise a parsed node sequence for code generation.

    Args:
        nodes: Nodes produced by ``parse``.

    Returns:
        A new flat node sequence.
    """
    result: list[Node] = []
    trim_next = False

    for node in nodes:
        if isinstance(node, TextNode):
            text = _strip_leading_newline(node.text) if trim_next else node.text
            trim_next = False
            if not text:
                continue
            previous = result[-1] if result else None
            if isinstance(previous, TextNode):
                result[-1] = TextNode(text=previous.text + text)
            else:
                result.append(TextNode(text=text))
            continue

        trim_next = node.trim_after
        if isinstance(node, CommentNode):
            result.append(node)
        else:
            result.append(_promote_include(node))

    return result
