"""Loading templates from directories on disk."""

import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from stencil.exceptions import TemplateNotFoundError

from ._protocol import TemplateSource

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


def normalize_name(name: str) -> str:
    """Normalise a template name to a relative POSIX path.

    Raises:
        TemplateNotFoundError: If the name is empty, absolute, or escapes
            the search root with ``..``.
    """
    cleaned = name.replace("\\", "/")
    normalized = posixpath.normpath(cleaned) if cleaned else ""
    if (
        not normalized
        or normalized == "."
        or cleaned.startswith("/")
        or normalized == ".."
        or normalized.startswith("../")
    ):
        msg = f"Invalid template name: {name!r}"
        raise TemplateNotFoundError(msg, name=name)
    return normalized


class FileSystemLoader:
    """Loads templates from an ordered list of directories.

    Names are relative POSIX paths. The first directory holding a match
    wins. A name without a direct match is retried with each configured
    extension appended. Files outside the search directories are never
    read, including through symlinks.

    Example:
        >>> loader = FileSystemLoader(["templates", "shared"], extensions=[".html"])
        >>> loader.get_source("pages/index").origin  # doctest: +SKIP
        '/site/templates/pages/index.html'
    """

    def __init__(
        self,
        search_paths: Sequence[str | Path] = (".",),
        *,
        extensions: Sequence[str] = (),
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the loader.

        Args:
            search_paths: Directories searched in order, highest precedence
                first. Duplicates are dropped.
            extensions: Suffixes tried when a name has no direct match.
            encoding: Text encoding of template files.
        """
        paths: list[Path] = []
        seen: set[Path] = set()
        for entry in search_paths:
            resolved = Path(entry).resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(resolved)
        self.search_paths: tuple[Path, ...] = tuple(paths)
        self.extensions: tuple[str, ...] = tuple(extensions)
        self.encoding: str = encoding

    def __repr__(self) -> str:
        paths = ", ".join(str(path) for path in self.search_paths)
        return f"FileSystemLoader([{paths}])"

    def _candidates(self, name: str) -> Iterator[str]:
        yield name
        for extension in self.extensions:
            yield name + extension

    def find(self, name: str) -> Path | None:
        """Return the file a template name resolves to, or None."""
        normalized = normalize_name(name)
        for root in self.search_paths:
            for candidate_name in self._candidates(normalized):
                candidate = (root / candidate_name).resolve()
                if not candidate.is_relative_to(root):
                    continue
                if candidate.is_file():
                    return candidate
        return None

    def get_source(self, name: str) -> TemplateSource:
        """Read the template called ``name``.

        Raises:
            TemplateNotFoundError: If no search directory holds the template
                or the file cannot be read or decoded.
        """
        path = self.find(name)
        if path is None:
            searched = ", ".join(str(root) for root in self.search_paths)
            msg = f"Template {name!r} not found (searched: {searched})"
            raise TemplateNotFoundError(msg, name=name)

        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read template {name!r} from {path}: {e}"
            raise TemplateNotFoundError(msg, name=name) from e

        return TemplateSource.from_text(name, text, origin=str(path))

    def list_templates(self) -> list[str]:
        """Return the names of all files under the search directories.

        Names are sorted and unique; a name shadowed by an earlier directory
        is listed once.
        """
        names: set[str] = set()
        for root in self.search_paths:
            if not root.is_dir():
                continue
            for path in root.rglob("*"):
                if path.is_file():
                    names.add(path.relative_to(root).as_posix())
        return sorted(names)
