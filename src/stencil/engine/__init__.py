"""Template compilation and rendering.

The pipeline runs tokenize -> parse -> build -> generate -> compile, and the
resulting CompiledTemplate executes against a context. ``Engine`` wires the
stages together with a loader, a cache and the include resolver.
"""

from ._builder import IncludeCall, build, match_include
from ._cache import CacheStats, TemplateCache, TemplateIdentity
from ._codegen import GeneratedCode, SourceLine, generate
from ._compiled import CompiledTemplate, IncludeFunction, compile_nodes
from ._engine import INLINE_TEMPLATE_NAME, Engine
from ._escape import EscapeFunction, escape_html, to_text
from ._include import DEFAULT_MAX_INCLUDE_DEPTH, IncludeResolver, resolve_include_name
from ._nodes import (
    CommentNode,
    ExpressionNode,
    IncludeNode,
    Node,
    StatementNode,
    TagNode,
    TextNode,
)
from ._parser import parse
from ._sandbox import SAFE_BUILTINS
from ._tokenizer import DEFAULT_SYNTAX, TagSyntax, tokenize
from ._tokens import SourcePosition, Token, TokenKind

__all__ = [
    "DEFAULT_MAX_INCLUDE_DEPTH",
    "DEFAULT_SYNTAX",
    "INLINE_TEMPLATE_NAME",
    "SAFE_BUILTINS",
    "CacheStats",
    "CommentNode",
    "CompiledTemplate",
    "Engine",
    "EscapeFunction",
    "ExpressionNode",
    "GeneratedCode",
    "IncludeCall",
    "IncludeFunction",
    "IncludeNode",
    "IncludeResolver",
    "Node",
    "SourceLine",
    "SourcePosition",
    "StatementNode",
    "TagNode",
    "TagSyntax",
    "TemplateCache",
    "TemplateIdentity",
    "TextNode",
    "Token",
    "TokenKind",
    "build",
    "compile_nodes",
    "escape_html",
    "generate",
    "match_include",
    "parse",
    "resolve_include_name",
    "to_text",
    "tokenize",
]
