"""Smoke tests for the typer application wiring."""

from pathlib import Path

import pytest
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from replicator.cli.app import app

runner = CliRunner()


class TestCliApp:
    """Invoke commands through the typer app, with settings redirected to a temp directory."""

    @pytest.fixture(autouse=True)
    def _isolate(self, tmp_path: Path, mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch) -> None:
        mocker.patch("replicator.config.settings.CONFIG_DIR", tmp_path / ".replicator")
        mocker.patch("replicator.config.settings.CONFIG_PATH", tmp_path / ".replicator" / "config")
        monkeypatch.delenv("REPLICATOR_LOG_LEVEL", raising=False)
        self.configure_logging = mocker.patch("replicator.cli.app.configure_logging")

    def test_resolve(self) -> None:
        result = runner.invoke(app, ["resolve", "v0.0.1", "v0.0.2", "--constraint", "v0.0.1"])
        assert result.exit_code == 0

    def test_resolve_no_match_exits_nonzero(self) -> None:
        result = runner.invoke(app, ["resolve", "1.0.0", "-c", "^2"])
        assert result.exit_code == 1

    def test_decide(self) -> None:
        result = runner.invoke(app, ["decide", "0.0.2", "--applied", "0.0.1"])
        assert result.exit_code == 0

    def test_log_level_option(self) -> None:
        runner.invoke(app, ["--log-level", "debug", "decide", "0.0.1"])
        self.configure_logging.assert_called_once_with("debug")

    def test_log_level_defaults_to_setting(self) -> None:
        runner.invoke(app, ["decide", "0.0.1"])
        self.configure_logging.assert_called_once_with("WARNING")

    def test_config_set_then_get(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", "set", "default-interval", "2m"])
        assert result.exit_code == 0
        assert "REPLICATOR_DEFAULT_INTERVAL=2m" in (tmp_path / ".replicator" / "config").read_text(encoding="utf-8")

    def test_status_with_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["status", "--state-file", str(tmp_path / "state.toml")])
        assert result.exit_code == 0
