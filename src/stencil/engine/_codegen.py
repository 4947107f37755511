"""Code generation: turns a node sequence into Python source.

The generated module body runs in a fresh namespace per render, holding a
shallow copy of the context, so every context key is a plain name. Output
goes through two helpers injected by the compiled template:

    __stencil_emit(value, escape)       append a value to the output buffer
    __stencil_include(path, locals)     render a partial and return its text

Statement code is spliced verbatim. Blocks are tracked by indentation only:
a statement whose last token is ``:`` opens a block, ``end`` closes it,
and ``else``/``elif``/``except``/``finally`` close and reopen it. Nothing
checks that the blocks make sense beyond that; Python's own ``compile``
reports anything else.
"""

import contextlib
import io
import os
import re
import token
import tokenize
from dataclasses import dataclass, field

from stencil.exceptions import CompileError

from ._nodes import (
    CommentNode,
    ExpressionNode,
    IncludeNode,
    Node,
    StatementNode,
    TextNode,
)
from ._tokens import SourcePosition

EMIT_NAME = "__stencil_emit"
INCLUDE_NAME = "__stencil_include"

_INDENT = "    "
_END_RE = re.compile(r"end\s*(#.*)?")
_CONTINUATION_KEYWORDS = frozenset({"else", "elif", "except", "finally"})
_KEYWORD_RE = re.compile(r"[A-Za-z_]+")
_STRING_STARTS = frozenset({token.FSTRING_START, token.TSTRING_START})
_STRING_ENDS = frozenset({token.FSTRING_END, token.TSTRING_END})
_LAYOUT_TOKENS = frozenset(
    {token.NL, token.COMMENT, token.INDENT, token.DEDENT, token.ENDMARKER}
)


@dataclass(frozen=True, slots=True)
class SourceLine:
    """Where a generated line came from in the template source."""

    line: int
    column: int
    fragment: str


@dataclass(frozen=True, slots=True)
class GeneratedCode:
    """Python source produced for a template.

    Attributes:
        source: The module body.
        filename: Pseudo filename used when compiling the source.
        line_map: Generated line number (1-based) to template origin.
    """

    source: str
    filename: str
    line_map: dict[int, SourceLine] = field(repr=False)

    def origin(self, lineno: int | None) -> SourceLine | None:
        """Return the template origin of a generated line.

        Lines without a direct entry (such as an implicit ``pass``) resolve
        to the closest preceding mapped line.
        """
        if lineno is None:
            return None
        for candidate in range(lineno, 0, -1):
            found = self.line_map.get(candidate)
            if found is not None:
                return found
        return None


@dataclass(slots=True)
class _Block:
    keyword: str
    indent: str
    opener: StatementNode
    has_body: bool = False


class CodeBuilder:
    """Accumulates generated lines while tracking open blocks."""

    def __init__(self, name: str) -> None:
        self.name: str = name
        self._lines: list[str] = []
        self._line_map: dict[int, SourceLine] = {}
        self._blocks: list[_Block] = []

    @property
    def indent(self) -> str:
        """Indentation of the innermost open block body."""
        return self._blocks[-1].indent if self._blocks else ""

    def add_line(
        self, line: str, origin: SourceLine | None = None, *, verbatim: bool = False
    ) -> None:
        """Append one line at the current indentation, or as is if ``verbatim``."""
        self._lines.append(line if verbatim else self.indent + line)
        if origin is not None:
            self._line_map[len(self._lines)] = origin
        if self._blocks:
            self._blocks[-1].has_body = True

    def open_block(
        self, keyword: str, extra_indent: str, opener: StatementNode
    ) -> None:
        """Start a block whose body is indented past ``extra_indent``."""
        self._blocks.append(
            _Block(
                keyword=keyword,
                indent=self.indent + extra_indent + _INDENT,
                opener=opener,
            )
        )

    def close_block(self, closer: StatementNode) -> _Block:
        """Close the innermost block.

        Raises:
            CompileError: If no block is open.
        """
        if not self._blocks:
            msg = f"'{closer.code.strip()}' does not close any open block"
            raise CompileError(
                msg,
                template=self.name,
                fragment=closer.code,
                line=closer.position.line,
                column=closer.position.column,
            )
        block = self._blocks[-1]
        if not block.has_body:
            self.add_line("pass")
        return self._blocks.pop()

    @property
    def innermost_keyword(self) -> str | None:
        return self._blocks[-1].keyword if self._blocks else None

    def finish(self) -> GeneratedCode:
        """Return the generated code.

        Raises:
            CompileError: If a block is still open.
        """
        if self._blocks:
            opener = self._blocks[-1].opener
            msg = f"Block '{opener.code.strip()}' is never closed with 'end'"
            raise CompileError(
                msg,
                template=self.name,
                fragment=opener.code,
                line=opener.position.line,
                column=opener.position.column,
            )
        source = "\n".join(self._lines) + "\n"
        return GeneratedCode(
            source=source,
            filename=f"<stencil:{self.name}>",
            line_map=dict(self._line_map),
        )


@dataclass(frozen=True, slots=True)
class _CodeLine:
    """One line of tag code. Verbatim lines start inside a multi-line string."""

    text: str
    origin: SourceLine
    verbatim: bool = False


def _scan(source: str) -> list[tokenize.TokenInfo]:
    """Tokenize Python source, keeping the tokens read before any error.

    Broken code is left for ``compile`` to report with a proper position.
    """
    tokens: list[tokenize.TokenInfo] = []
    with contextlib.suppress(tokenize.TokenError, SyntaxError):
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            tokens.append(tok)
    return tokens


def _string_rows(code: str) -> tuple[frozenset[int], frozenset[int]]:
    """Find the 1-based rows of ``code`` covered by multi-line string literals.

    Returns:
        Rows that start inside a string, and rows that end inside one.
    """
    # Inside brackets the tokenizer ignores indentation.
    tokens = _scan(f"(\n{code}\n)")
    spans: list[tuple[int, int]] = []
    starts: list[int] = []
    for tok in tokens:
        if tok.type == token.STRING:
            spans.append((tok.start[0] - 1, tok.end[0] - 1))
        elif tok.type in _STRING_STARTS:
            starts.append(tok.start[0] - 1)
        elif tok.type in _STRING_ENDS and starts:
            spans.append((starts.pop(), tok.end[0] - 1))
    starts_inside = frozenset(
        row for first, last in spans for row in range(first + 1, last + 1)
    )
    ends_inside = frozenset(row for first, last in spans for row in range(first, last))
    return starts_inside, ends_inside


def _code_lines(code: str, position: SourcePosition) -> list[_CodeLine]:
    """Split tag code into lines paired with their source origin.

    The first code line loses the whitespace before it and later lines lose
    as much of that margin as they share. Lines that start inside a
    multi-line string literal are kept exactly as written.
    """
    fragment = code.strip()
    source_lines = code.split("\n")
    lines = list(source_lines)
    first = next((i for i, line in enumerate(lines) if line.strip()), None)
    if first is None:
        return []
    margin = _leading_whitespace(lines[first])
    lines[first] = lines[first][len(margin) :]
    starts_inside, ends_inside = _string_rows("\n".join(lines))

    result: list[_CodeLine] = []
    for offset, line in enumerate(lines):
        row = offset + 1
        verbatim = row in starts_inside
        if not verbatim:
            if not line.strip():
                continue
            shared = os.path.commonprefix([margin, _leading_whitespace(line)])
            line = line[len(shared) :]
        if row not in ends_inside:
            line = line.rstrip()
        if offset == 0:
            column = position.column
        else:
            column = len(_leading_whitespace(source_lines[offset])) + 1
        origin = SourceLine(line=position.line + offset, column=column, fragment=fragment)
        result.append(_CodeLine(line, origin, verbatim))
    return result


def _block_header(lines: list[_CodeLine]) -> _CodeLine | None:
    """Return the first line of the block header ending the code, if any.

    A header is a logical line whose last token is ``:``. Comments are
    tokens of their own, so a trailing comment never hides the colon.
    """
    header_row = 0
    last: tokenize.TokenInfo | None = None
    at_line_start = True
    for tok in _scan("\n".join(line.text for line in lines)):
        if tok.type == token.NEWLINE:
            at_line_start = True
        elif tok.type not in _LAYOUT_TOKENS:
            if at_line_start:
                header_row = tok.start[0]
                at_line_start = False
            last = tok
    if last is None or last.type != token.OP or last.string != ":":
        return None
    return lines[header_row - 1]


def _leading_keyword(line: str) -> str:
    match = _KEYWORD_RE.match(line.lstrip())
    return match.group(0) if match else ""


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _emit_wrapped(
    builder: CodeBuilder,
    prefix: str,
    parts: list[list[_CodeLine]],
    suffix: str,
    origin: SourceLine,
) -> None:
    """Emit ``prefix(part, part, ...)suffix`` with each part on its own lines.

    Parts are wrapped in parentheses so multi-line code and trailing
    comments stay intact.
    """
    builder.add_line(prefix + "(", origin)
    for index, part in enumerate(parts):
        if index:
            builder.add_line("), (", origin)
        for line in part:
            builder.add_line(line.text, line.origin, verbatim=line.verbatim)
    builder.add_line(")" + suffix, origin)


def _generate_expression(builder: CodeBuilder, node: ExpressionNode) -> None:
    lines = _code_lines(node.code, node.position)
    origin = SourceLine(node.position.line, node.position.column, node.code.strip())
    if not lines:
        msg = "Empty output tag"
        raise CompileError(
            msg,
            template=builder.name,
            fragment=node.code,
            line=node.position.line,
            column=node.position.column,
        )
    _emit_wrapped(builder, f"{EMIT_NAME}(", [lines], f", {node.escape!r})", origin)


def _generate_include(builder: CodeBuilder, node: IncludeNode) -> None:
    origin = SourceLine(node.position.line, node.position.column, node.code.strip())
    locals_source = node.locals_expr if node.locals_expr is not None else "None"
    parts = [
        [
            _CodeLine(line.text, origin, line.verbatim)
            for line in _code_lines(source, node.position)
        ]
        for source in (node.path_expr, locals_source)
    ]
    _emit_wrapped(
        builder,
        f"{EMIT_NAME}({INCLUDE_NAME}(",
        parts,
        f"), {node.escape!r})",
        origin,
    )


def _generate_statement(builder: CodeBuilder, node: StatementNode) -> None:
    # Comment-only lines never count as a block body.
    lines = [
        line
        for line in _code_lines(node.code, node.position)
        if line.verbatim or not line.text.lstrip().startswith("#")
    ]
    if not lines:
        return

    first_line = lines[0].text
    if len(lines) == 1 and _END_RE.fullmatch(first_line.strip()):
        closed = builder.close_block(node)
        if closed.keyword == "case" and builder.innermost_keyword == "match":
            builder.close_block(node)
        return

    keyword = _leading_keyword(first_line)
    if keyword in _CONTINUATION_KEYWORDS or (
        keyword == "case" and builder.innermost_keyword == "case"
    ):
        builder.close_block(node)

    for line in lines:
        builder.add_line(line.text, line.origin, verbatim=line.verbatim)

    header = _block_header(lines)
    if header is not None:
        builder.open_block(
            _leading_keyword(header.text), _leading_whitespace(header.text), node
        )


def generate(nodes: list[Node], *, name: str) -> GeneratedCode:
    """Generate Python source for a node sequence.

    Args:
        nodes: Nodes produced by ``build``.
        name: Template name, used for the pseudo filename and errors.

    Returns:
        The generated source with its line map.

    Raises:
        CompileError: If blocks are unbalanced or an output tag is empty.
    """
    builder = CodeBuilder(name)

    for node in nodes:
        match node:
            case TextNode(text=text):
                builder.add_line(f"{EMIT_NAME}({text!r}, False)")
            case ExpressionNode():
                _generate_expression(builder, node)
            case IncludeNode():
                _generate_include(builder, node)
            case StatementNode():
                _generate_statement(builder, node)
            case CommentNode():
                pass

    return builder.finish()
