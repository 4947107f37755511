# pyright: reportAny=false, reportUnknownArgumentType=false
import copy
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from stencil.config import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from stencil.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        content = """
[engine]
sandbox = true
cache_size = 42
"""
        path = Path("/test/stencil.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result == {"engine": {"sandbox": True, "cache_size": 42}}

    def test_raises_file_not_found_for_missing_file(self, fs: FakeFilesystem) -> None:
        path = Path("/test/missing.toml")

        with pytest.raises(FileNotFoundError):
            read_toml_file(path)

    def test_raises_config_load_error_for_invalid_toml(
        self, fs: FakeFilesystem
    ) -> None:
        content = """
[engine
sandbox = true
"""
        path = Path("/test/invalid.toml")
        fs.create_file(path, contents=content)

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert error.line is not None
        assert error.column is not None


class TestDeepMerge:
    def test_nested_dicts_are_merged(self) -> None:
        base = {"engine": {"sandbox": False, "cache_size": 1}}
        override = {"engine": {"sandbox": True}}

        assert deep_merge(base, override) == {
            "engine": {"sandbox": True, "cache_size": 1}
        }

    def test_lists_are_replaced(self) -> None:
        base = {"loader": {"search_paths": ["a", "b"]}}
        override = {"loader": {"search_paths": ["c"]}}

        assert deep_merge(base, override)["loader"]["search_paths"] == ["c"]

    def test_inputs_are_not_modified(self) -> None:
        base = {"a": {"b": [1]}}
        override = {"a": {"c": 2}}
        base_copy = copy.deepcopy(base)
        override_copy = copy.deepcopy(override)

        result = deep_merge(base, override)
        result["a"]["b"].append(2)

        assert base == base_copy
        assert override == override_copy

    def test_scalar_replaces_dict(self) -> None:
        assert deep_merge({"a": {"b": 1}}, {"a": 5}) == {"a": 5}


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-3", -3),
            ("3.5", 3.5),
            ("[1, 2]", [1, 2]),
            ('{"a": 1}', {"a": 1}),
            ("[not json", "[not json"),
            ("1.2.3", "1.2.3"),
            ("hello", "hello"),
            ("", ""),
        ],
    )
    def test_infers_type(self, raw: str, expected: object) -> None:
        assert parse_string_value(raw) == expected


class TestSetNestedKey:
    def test_creates_intermediate_dicts(self) -> None:
        data: dict[str, object] = {}

        set_nested_key(data, "a.b.c", 1)

        assert data == {"a": {"b": {"c": 1}}}

    def test_replaces_scalars_on_the_way(self) -> None:
        data: dict[str, object] = {"a": 1}

        set_nested_key(data, "a.b", 2)

        assert data == {"a": {"b": 2}}

    def test_keeps_siblings(self) -> None:
        data: dict[str, object] = {"a": {"x": 1}}

        set_nested_key(data, "a.y", 2)

        assert data == {"a": {"x": 1, "y": 2}}


class TestParseEnvVars:
    def test_maps_double_underscore_to_nesting(self) -> None:
        environ = {
            "STENCIL_ENGINE__CACHE_SIZE": "10",
            "STENCIL_ENGINE__SANDBOX": "true",
            "STENCIL_LOGGING__LEVEL": "debug",
            "OTHER": "ignored",
        }

        assert parse_env_vars(environ=environ) == {
            "engine": {"cache_size": 10, "sandbox": True},
            "logging": {"level": "debug"},
        }

    def test_skips_reserved_and_empty_keys(self) -> None:
        environ = {"STENCIL_DEBUG": "1", "STENCIL_": "x"}

        assert parse_env_vars(environ=environ) == {}

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STENCIL_LOADER__ENCODING", "latin-1")

        assert parse_env_vars() == {"loader": {"encoding": "latin-1"}}

    def test_custom_prefix(self) -> None:
        result = parse_env_vars("APP_", {"APP_ENGINE__SANDBOX": "false"})

        assert result == {"engine": {"sandbox": False}}
