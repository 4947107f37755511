"""Shared test fixtures for Stencil tests."""

from pathlib import Path

import pytest
from rich.console import Console

from stencil.engine import Engine, TemplateCache
from stencil.loaders import DictLoader


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep STENCIL_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("STENCIL_"):
            monkeypatch.delenv(key)


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def dict_loader() -> DictLoader:
    """An empty in-memory loader; tests add templates to ``templates``."""
    return DictLoader()


@pytest.fixture
def cache() -> TemplateCache:
    return TemplateCache(max_entries=16)


@pytest.fixture
def engine(dict_loader: DictLoader, cache: TemplateCache) -> Engine:
    """Engine over ``dict_loader`` with its own cache."""
    return Engine(dict_loader, cache=cache)


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Directory of template files.

    Structure:
        tmp_path/templates/
            page.html            # includes ./parts/row.html per item
            parts/row.html
            broken.html          # unterminated tag
    """
    root = tmp_path / "templates"
    (root / "parts").mkdir(parents=True)
    (root / "page.html").write_text(
        "<h1><%= title %></h1>\n"
        "<% for item in items: -%>\n"
        "<%- include('./parts/row.html', {'item': item}) %>\n"
        "<% end -%>\n"
    )
    (root / "parts" / "row.html").write_text("<li><%= item %></li>")
    (root / "broken.html").write_text("Hello <%= name")
    return root
