"""Tag parser: classifies tokens into template nodes."""

from stencil.exceptions import UnterminatedTagError

from ._nodes import CommentNode, ExpressionNode, Node, StatementNode, TextNode
from ._tokens import Token, TokenKind

_TRIM_CLOSE_PREFIX = "-"


def parse(tokens: list[Token], *, name: str | None = None) -> list[Node]:
    """Classify a token stream into a flat node sequence.

    Tag bodies are not interpreted: statement code is kept verbatim, and
    include directives are left for the builder to recognise.

    Args:
        tokens: Tokens produced by ``tokenize``.
        name: Template name, used in error messages.

    Returns:
        Nodes in source order.

    Raises:
        UnterminatedTagError: If an open token is not followed by a close token.
    """
    nodes: list[Node] = []
    position = 0
    count = len(tokens)

    while position < count:
        token = tokens[position]
        position += 1

        if token.kind is TokenKind.LITERAL:
            nodes.append(TextNode(text=token.content))
            continue

        if token.kind is TokenKind.TAG_CLOSE:
            msg = "Unexpected tag close without a matching open tag"
            raise UnterminatedTagError(
                msg,
                template=name,
                fragment=token.content,
                line=token.position.line,
                column=token.position.column,
            )

        closing = tokens[position] if position < count else None
        if closing is None or closing.kind is not TokenKind.TAG_CLOSE:
            msg = "Unterminated tag: open tag has no matching close"
            raise UnterminatedTagError(
                msg,
                template=name,
                fragment=token.content,
                line=token.position.line,
                column=token.position.column,
            )
        position += 1

        trim_after = closing.content.startswith(_TRIM_CLOSE_PREFIX)
        nodes.append(_classify(token, trim_after=trim_after))

    return nodes


def _classify(token: Token, *, trim_after: bool) -> Node:
    match token.kind:
        case TokenKind.TAG_OPEN_ESCAPED:
            return ExpressionNode(
                code=token.content,
                escape=True,
                position=token.position,
                trim_after=trim_after,
            )
        case TokenKind.TAG_OPEN_RAW:
            return ExpressionNode(
                code=token.content,
                escape=False,
                position=token.position,
                trim_after=trim_after,
            )
        case TokenKind.TAG_OPEN_COMMENT:
            return CommentNode(
                text=token.content, position=token.position, trim_after=trim_after
            )
        case _:
            return StatementNode(
                code=token.content, position=token.position, trim_after=trim_after
            )
