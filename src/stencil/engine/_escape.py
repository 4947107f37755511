"""HTML escaping for interpolated values."""

from collections.abc import Callable

type EscapeFunction = Callable[[object], str]

_HTML_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)


def to_text(value: object) -> str:
    """Convert a value to output text; None becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def escape_html(value: object) -> str:
    """Escape the five HTML-significant characters in a value's text form.

    Not idempotent: already escaped text is escaped again.

    Example:
        >>> escape_html("<a href='x'>Tom & Jerry</a>")
        '&lt;a href=&#39;x&#39;&gt;Tom &amp; Jerry&lt;/a&gt;'
    """
    return to_text(value).translate(_HTML_ESCAPE_TABLE)
