# pyright: reportAny=false
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from stencil.config import (
    Config,
    ConfigSourceName,
    EngineConfig,
    LogFormat,
    LogLevel,
)
from stencil.exceptions import ConfigLoadError, ConfigValidationError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem
    from pytest_mock import MockerFixture


@pytest.fixture
def user_config_path(fs: FakeFilesystem, mocker: MockerFixture) -> Path:
    path = Path("/home/user/.config/stencil/config.toml")
    mocker.patch(
        "stencil.config._discovery.get_user_config_path", return_value=path
    )
    fs.create_dir("/site")
    return path


class TestDefaults:
    def test_default_values(self) -> None:
        config = Config()

        assert config.engine == EngineConfig()
        assert config.engine.max_include_depth == 50
        assert config.engine.max_template_size is None
        assert config.engine.cache_size == 512
        assert config.engine.sandbox is False
        assert config.loader.search_paths == (".",)
        assert config.loader.encoding == "utf-8"
        assert config.logging.level is LogLevel.WARNING
        assert config.logging.format is LogFormat.TEXT

    def test_is_frozen(self) -> None:
        config = Config()

        with pytest.raises(ValueError, match="frozen"):
            config.engine.sandbox = True  # pyright: ignore[reportAttributeAccessIssue]


class TestFromDict:
    def test_merges_over_defaults(self) -> None:
        config = Config.from_dict({"engine": {"sandbox": True}})

        assert config.engine.sandbox is True
        assert config.engine.cache_size == 512

    def test_unknown_keys_are_ignored(self) -> None:
        config = Config.from_dict({"engine": {"mystery": 1}, "other": {}})

        assert config.to_dict() == Config().to_dict()

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ({"engine": {"max_include_depth": 0}}, "engine.max_include_depth"),
            ({"engine": {"cache_size": -1}}, "engine.cache_size"),
            ({"engine": {"delimiter": "%%"}}, "engine.delimiter"),
            ({"logging": {"level": "loud"}}, "logging.level"),
            ({"engine": {"sandbox": "maybe"}}, "engine.sandbox"),
        ],
    )
    def test_invalid_values(self, data: dict[str, object], key: str) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict(data)

        assert exc_info.value.key == key
        assert key in str(exc_info.value)

    def test_range_error_reports_bound(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict({"engine": {"max_include_depth": 0}})

        assert exc_info.value.expected == ">= 1"
        assert exc_info.value.value == 0


class TestFromFile:
    def test_reads_file(self, fs: FakeFilesystem) -> None:
        fs.create_file("/site/stencil.toml", contents="[engine]\nsandbox = true\n")

        config = Config.from_file(Path("/site/stencil.toml"))

        assert config.engine.sandbox is True
        assert config.sources[0].name == ConfigSourceName.PROJECT

    def test_validation_error_names_file(self, fs: FakeFilesystem) -> None:
        fs.create_file("/site/stencil.toml", contents="[engine]\ncache_size = -5\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_file(Path("/site/stencil.toml"))

        assert exc_info.value.source == "/site/stencil.toml"


class TestLoad:
    def test_defaults_only(self, user_config_path: Path) -> None:
        config = Config.load(start=Path("/site"))

        assert config.to_dict() == Config().to_dict()

    def test_precedence(
        self,
        fs: FakeFilesystem,
        user_config_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        fs.create_file(
            user_config_path,
            contents="[engine]\ncache_size = 1\nmax_include_depth = 1\nsandbox = true\n",
        )
        fs.create_file(
            "/site/stencil.toml",
            contents="[engine]\ncache_size = 2\nmax_include_depth = 2\n",
        )
        monkeypatch.setenv("STENCIL_ENGINE__CACHE_SIZE", "3")

        config = Config.load(
            start=Path("/site"), overrides={"logging": {"level": "debug"}}
        )

        assert config.engine.sandbox is True
        assert config.engine.max_include_depth == 2
        assert config.engine.cache_size == 3
        assert config.logging.level is LogLevel.DEBUG

    def test_overrides_beat_env(
        self, user_config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STENCIL_ENGINE__CACHE_SIZE", "3")

        config = Config.load(
            start=Path("/site"), overrides={"engine": {"cache_size": 4}}
        )

        assert config.engine.cache_size == 4

    def test_env_can_be_excluded(
        self, user_config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STENCIL_ENGINE__CACHE_SIZE", "3")

        config = Config.load(start=Path("/site"), include_env=False)

        assert config.engine.cache_size == 512

    def test_explicit_config_path(
        self, fs: FakeFilesystem, user_config_path: Path
    ) -> None:
        fs.create_file("/other/custom.toml", contents="[engine]\nsandbox = true\n")

        config = Config.load(
            start=Path("/site"), config_path=Path("/other/custom.toml")
        )

        assert config.engine.sandbox is True

    def test_missing_explicit_config_path(self, user_config_path: Path) -> None:
        with pytest.raises(ConfigLoadError, match="Config file not found"):
            _ = Config.load(config_path=Path("/nope.toml"))

    def test_invalid_toml(self, fs: FakeFilesystem, user_config_path: Path) -> None:
        fs.create_file("/site/stencil.toml", contents="[engine\n")

        with pytest.raises(ConfigLoadError):
            _ = Config.load(start=Path("/site"))

    def test_records_sources(
        self, fs: FakeFilesystem, user_config_path: Path
    ) -> None:
        fs.create_file("/site/stencil.toml", contents="[engine]\nsandbox = true\n")

        config = Config.load(start=Path("/site"), overrides={})

        names = [source.name for source in config.sources]
        assert names == [
            ConfigSourceName.CLI,
            ConfigSourceName.ENV,
            ConfigSourceName.PROJECT,
            ConfigSourceName.USER,
            ConfigSourceName.DEFAULT,
        ]
        project = config.sources[2]
        assert project.exists is True
        assert project.values == {"engine": {"sandbox": True}}
        assert config.sources[3].exists is False


class TestAccessors:
    def test_get_dotted_key(self) -> None:
        config = Config.from_dict({"engine": {"cache_size": 7}})

        assert config.get("engine.cache_size") == 7
        assert config.get("engine") == config.to_dict()["engine"]

    def test_get_default(self) -> None:
        config = Config()

        assert config.get("engine.nothing") is None
        assert config.get("nothing.at.all", "fallback") == "fallback"

    def test_to_dict_is_json_ready(self) -> None:
        data = Config().to_dict()

        assert data["logging"]["level"] == "warning"
        assert data["loader"]["search_paths"] == ["."]

    def test_to_dict_without_defaults(self) -> None:
        config = Config.from_dict({"engine": {"sandbox": True}})

        assert config.to_dict(include_defaults=False) == {"engine": {"sandbox": True}}

    def test_to_toml_round_trips(self) -> None:
        config = Config.from_dict({"engine": {"max_template_size": 100}})

        data = tomllib.loads(config.to_toml())

        assert Config.from_dict(data) == config

    def test_to_toml_omits_none(self) -> None:
        data = tomllib.loads(Config().to_toml())

        assert "max_template_size" not in data["engine"]
