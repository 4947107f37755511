from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from stencil.config import Config
from stencil.engine import INLINE_TEMPLATE_NAME, Engine, TemplateCache
from stencil.exceptions import (
    CompileError,
    ConfigValidationError,
    RuntimeEvaluationError,
    TemplateNotFoundError,
    TemplateTooLargeError,
    UnterminatedTagError,
)
from stencil.loaders import DictLoader, FileSystemLoader, FunctionLoader

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class TestRender:
    def test_interpolation_is_escaped(self, engine: Engine) -> None:
        assert engine.render("Hello <%= name %>!", {"name": "<World>"}) == (
            "Hello &lt;World&gt;!"
        )

    def test_raw_output(self, engine: Engine) -> None:
        assert engine.render("<%- html %>", {"html": "<em>x</em>"}) == "<em>x</em>"

    def test_loop_with_trimmed_statements(self, engine: Engine) -> None:
        source = "<ul>\n<% for x in items: -%>\n<li><%= x %></li>\n<% end -%>\n</ul>"

        assert engine.render(source, {"items": [1, 2]}) == (
            "<ul>\n<li>1</li>\n<li>2</li>\n</ul>"
        )

    def test_false_branch_renders_nothing(self, engine: Engine) -> None:
        assert engine.render("<% if False: %>X<% end %>") == ""

    def test_if_elif_else(self, engine: Engine) -> None:
        source = "<% if n > 1: %>many<% elif n == 1: %>one<% else: %>none<% end %>"

        assert [engine.render(source, {"n": n}) for n in (0, 1, 5)] == [
            "none",
            "one",
            "many",
        ]

    def test_literal_open_marker(self, engine: Engine) -> None:
        assert engine.render("<%% raw %>") == "<% raw %>"

    def test_empty_source(self, engine: Engine) -> None:
        assert engine.render("") == ""

    def test_context_is_not_mutated(self, engine: Engine) -> None:
        context: dict[str, object] = {"items": [1]}

        _ = engine.render("<% items = [] %><% extra = 1 %>", context)

        assert context == {"items": [1]}

    def test_no_state_leaks_between_renders(self, engine: Engine) -> None:
        _ = engine.render("<% leaked = 1 %>", name="a")

        with pytest.raises(RuntimeEvaluationError, match="NameError"):
            _ = engine.render("<%= leaked %>", name="b")

    def test_python_expressions(self, engine: Engine) -> None:
        source = "<%= ', '.join(name.upper() for name in names) %>"

        assert engine.render(source, {"names": ["a", "b"]}) == "A, B"

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ('<% items = {\n  "a": 1,\n} %><%= items["a"] %>', "1"),
            ("<% x = [1,\n2] %><%= sum(x) %>", "3"),
            ('<% for i in [1]: %><%= """a\nb""" %><% end %>', "a\nb"),
            ('<% s = """x\n# y\nz""" %><%= s %>', "x\n# y\nz"),
            ('<% s = """a\n\n  b  \nc""" %><%= s %>', "a\n\n  b  \nc"),
            ('<% if True: %><%= f"""{1}\n  y""" %><% end %>', "1\n  y"),
            ("<% if True:  # it's on %>X<% end %>", "X"),
        ],
    )
    def test_multiline_python_is_spliced_intact(
        self, engine: Engine, source: str, expected: str
    ) -> None:
        assert engine.render(source) == expected

    def test_unterminated_tag(self, engine: Engine) -> None:
        with pytest.raises(UnterminatedTagError) as exc_info:
            _ = engine.render("Hello <%= name", name="greet")

        assert exc_info.value.template == "greet"
        assert exc_info.value.line == 1
        assert exc_info.value.column == 7

    def test_unbalanced_block(self, engine: Engine) -> None:
        with pytest.raises(CompileError):
            _ = engine.render("<% for x in y: %>x")

    def test_runtime_error_line(self, engine: Engine) -> None:
        with pytest.raises(RuntimeEvaluationError) as exc_info:
            _ = engine.render("a\nb\n<%= user.name %>", {"user": None})

        assert exc_info.value.template == INLINE_TEMPLATE_NAME
        assert exc_info.value.line == 3
        assert isinstance(exc_info.value.cause, AttributeError)


class TestCompile:
    def test_unnamed_sources_bypass_cache(
        self, engine: Engine, cache: TemplateCache
    ) -> None:
        first = engine.compile("x")
        second = engine.compile("x")

        assert first is not second
        assert len(cache) == 0

    def test_named_sources_are_cached(
        self, engine: Engine, cache: TemplateCache
    ) -> None:
        first = engine.compile("x", name="t")
        second = engine.compile("x", name="t")

        assert first is second
        assert cache.stats.compiles == 1

    def test_empty_injected_cache_is_kept(self) -> None:
        shared = TemplateCache()
        loader = DictLoader({"p": "hi"})
        first = Engine(loader, cache=shared)
        second = Engine(loader, cache=shared)

        assert first.cache is shared
        assert first.render_file("p") == "hi"
        assert second.render_file("p") == "hi"
        assert len(shared) == 1
        assert shared.stats.compiles == 1
        assert shared.stats.hits == 1

    def test_injected_escape_is_used(self) -> None:
        engine = Engine(escape=str.upper)

        assert engine.render("<%= 'a' %>") == "A"

    def test_changed_named_source_recompiles(self, engine: Engine) -> None:
        first = engine.compile("x", name="t")
        second = engine.compile("y", name="t")

        assert first is not second
        assert second.execute() == "y"

    def test_compile_then_execute(self, engine: Engine) -> None:
        template = engine.compile("<%= a + b %>", name="sum")

        assert engine.execute(template, {"a": 1, "b": 2}) == "3"
        assert engine.execute(template, {"a": "x", "b": "y"}) == "xy"

    def test_failed_compile_is_retried(
        self, engine: Engine, cache: TemplateCache
    ) -> None:
        with pytest.raises(UnterminatedTagError):
            _ = engine.compile("<%", name="t")

        assert "t" not in cache


class TestGetTemplate:
    def test_without_loader(self) -> None:
        engine = Engine()

        with pytest.raises(TemplateNotFoundError, match="No template loader"):
            _ = engine.get_template("a")

    def test_missing_template(self, engine: Engine) -> None:
        with pytest.raises(TemplateNotFoundError) as exc_info:
            _ = engine.get_template("missing")

        assert exc_info.value.name == "missing"

    def test_loader_exceptions_become_not_found(self) -> None:
        class BrokenLoader:
            def get_source(self, name: str):
                msg = "disk on fire"
                raise RuntimeError(msg)

        engine = Engine(BrokenLoader())  # pyright: ignore[reportArgumentType]

        with pytest.raises(TemplateNotFoundError, match="disk on fire") as exc_info:
            _ = engine.get_template("a")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_reuses_compiled_template(
        self, engine: Engine, dict_loader: DictLoader
    ) -> None:
        dict_loader.templates["a"] = "A"

        assert engine.get_template("a") is engine.get_template("a")

    def test_changed_source_is_recompiled(
        self, engine: Engine, dict_loader: DictLoader
    ) -> None:
        dict_loader.templates["a"] = "old"
        assert engine.render_file("a") == "old"

        dict_loader.templates["a"] = "new"

        assert engine.render_file("a") == "new"

    def test_function_loader(self) -> None:
        engine = Engine(FunctionLoader({"a": "<%= 1 + 1 %>"}.get))

        assert engine.render_file("a") == "2"

    def test_file_loader(self, template_dir: Path) -> None:
        engine = Engine(FileSystemLoader([template_dir]))

        with pytest.raises(UnterminatedTagError) as exc_info:
            _ = engine.render_file("broken.html")

        assert exc_info.value.template == "broken.html"


class TestConfiguration:
    def test_size_limit(self) -> None:
        engine = Engine(config=Config.from_dict({"engine": {"max_template_size": 4}}))

        assert engine.render("abcd") == "abcd"
        with pytest.raises(TemplateTooLargeError) as exc_info:
            _ = engine.render("abcde")

        assert exc_info.value.size == 5
        assert exc_info.value.limit == 4

    def test_size_limit_applies_to_loaded_templates(self) -> None:
        config = Config.from_dict({"engine": {"max_template_size": 2}})
        engine = Engine(DictLoader({"big": "abc"}), config=config)

        with pytest.raises(TemplateTooLargeError):
            _ = engine.render_file("big")

    def test_custom_delimiters(self) -> None:
        config = Config.from_dict(
            {"engine": {"open_delimiter": "{", "close_delimiter": "}", "delimiter": "?"}}
        )
        engine = Engine(config=config)

        assert engine.render("{?= x ?} <%= x %>", {"x": 1}) == "1 <%= x %>"

    def test_invalid_delimiter(self) -> None:
        config = Config.from_dict({"engine": {"delimiter": "="}})

        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Engine(config=config)

        assert exc_info.value.key == "engine.delimiter"

    def test_cache_size_bounds_private_cache(self) -> None:
        engine = Engine(config=Config.from_dict({"engine": {"cache_size": 3}}))

        assert engine.cache.max_entries == 3

    def test_zero_cache_size_is_unbounded(self) -> None:
        engine = Engine(config=Config.from_dict({"engine": {"cache_size": 0}}))

        assert engine.cache.max_entries is None

    def test_engines_do_not_share_caches(self) -> None:
        first = Engine()
        second = Engine()

        _ = first.compile("x", name="t")

        assert "t" in first.cache
        assert "t" not in second.cache

    def test_custom_escape(self) -> None:
        engine = Engine(escape=lambda v: str(v).upper())

        assert engine.render("<%= v %>", {"v": "quiet"}) == "QUIET"

    def test_from_config_uses_loader_settings(self, tmp_path: Path) -> None:
        (tmp_path / "hello.txt").write_text("hi <%= who %>")
        config = Config.from_dict(
            {"loader": {"search_paths": [str(tmp_path)], "extensions": [".txt"]}}
        )

        engine = Engine.from_config(config)

        assert engine.render_file("hello", {"who": "there"}) == "hi there"


class TestLogging:
    def test_logs_compile_and_failure(self, mocker: MockerFixture) -> None:
        logger = mocker.Mock()
        engine = Engine(logger=logger)

        _ = engine.render("ok", name="t")
        with pytest.raises(UnterminatedTagError):
            _ = engine.render("<%", name="bad")

        events = [c.args[0] for c in logger.debug.call_args_list]
        assert "template_compiled" in events
        logger.info.assert_any_call(
            "template_compile_failed",
            template="bad",
            error=mocker.ANY,
            line=1,
            column=1,
        )
