from typing import TYPE_CHECKING, cast

from cyclopts import App

from stencil.cli._commands import register_commands

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class TestCommandRegistration:
    def test_register_commands_registers_subcommands(
        self, mocker: MockerFixture
    ) -> None:
        mock_app = mocker.MagicMock(spec=App)
        register_commands(mock_app)

        assert cast("int", mock_app.command.call_count) == 3  # pyright: ignore[reportAny]


class TestMain:
    def test_main_runs_meta_app(self, mocker: MockerFixture) -> None:
        from stencil.cli import _app

        fake_app = mocker.MagicMock()
        mocker.patch.object(_app, "create_app", return_value=fake_app)

        _app.main()

        fake_app.meta.assert_called_once_with()
