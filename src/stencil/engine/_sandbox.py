"""Restricted builtins for template code.

Enabled with ``engine.sandbox = true``. Template code then sees only the
builtins listed here: no file access, no imports, no dynamic code, and no
attribute introspection helpers. This narrows what a template can touch by
accident; it is not a security boundary for hostile templates.
"""

import builtins
from types import MappingProxyType

_SAFE_BUILTIN_NAMES = frozenset(
    {
        # Types and constructors
        "bool",
        "bytes",
        "complex",
        "dict",
        "float",
        "frozenset",
        "int",
        "list",
        "object",
        "range",
        "set",
        "slice",
        "str",
        "tuple",
        # Functions
        "abs",
        "all",
        "any",
        "ascii",
        "bin",
        "callable",
        "chr",
        "divmod",
        "enumerate",
        "filter",
        "format",
        "hash",
        "hex",
        "isinstance",
        "issubclass",
        "iter",
        "len",
        "map",
        "max",
        "min",
        "next",
        "oct",
        "ord",
        "pow",
        "repr",
        "reversed",
        "round",
        "sorted",
        "sum",
        "zip",
        # Exceptions templates commonly catch
        "ArithmeticError",
        "AttributeError",
        "Exception",
        "IndexError",
        "KeyError",
        "LookupError",
        "StopIteration",
        "TypeError",
        "ValueError",
        "ZeroDivisionError",
    }
)

SAFE_BUILTINS: MappingProxyType[str, object] = MappingProxyType(
    {
        name: getattr(builtins, name)
        for name in sorted(_SAFE_BUILTIN_NAMES)
        if hasattr(builtins, name)
    }
)
