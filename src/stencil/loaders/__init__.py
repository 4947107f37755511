"""Template loaders.

A loader turns a template name into a ``TemplateSource``. The engine only
talks to loaders through ``TemplateLoader.get_source``.
"""

from ._filesystem import FileSystemLoader, normalize_name
from ._memory import DictLoader, FunctionLoader
from ._protocol import TemplateLoader, TemplateSource, fingerprint_source

__all__ = [
    "DictLoader",
    "FileSystemLoader",
    "FunctionLoader",
    "TemplateLoader",
    "TemplateSource",
    "fingerprint_source",
    "normalize_name",
]
