"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be passed straight to deep_merge,
which copies rather than mutates its inputs.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "engine": {
        "max_include_depth": 50,
        "max_template_size": None,
        "cache_size": 512,
        "sandbox": False,
        "open_delimiter": "<",
        "close_delimiter": ">",
        "delimiter": "%",
    },
    "loader": {
        "search_paths": ["."],
        "extensions": [],
        "encoding": "utf-8",
    },
    "logging": {
        "level": "warning",
        "format": "text",
        "file": "",
    },
}
