"""Integration tests for replicator.cli.commands.config_cmd: set, get, list with real temp files."""

from pathlib import Path

import pytest
import typer
from pytest_mock import MockerFixture

from replicator.cli.commands.config_cmd import do_config_get, do_config_list, do_config_set
from replicator.config.settings import SettingSource, get_setting_value, list_settings


class TestConfigCmd:
    """Integration tests for config command functions with a temp settings file."""

    @pytest.fixture(autouse=True)
    def _isolate_settings(self, tmp_path: Path, mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch) -> None:
        config_dir = tmp_path / ".replicator"
        mocker.patch("replicator.config.settings.CONFIG_DIR", config_dir)
        mocker.patch("replicator.config.settings.CONFIG_PATH", config_dir / "config")
        monkeypatch.delenv("REPLICATOR_DEFAULT_INTERVAL", raising=False)
        monkeypatch.delenv("REPLICATOR_LOG_LEVEL", raising=False)

    def test_config_set_and_get_roundtrip(self) -> None:
        """Setting a key via do_config_set then reading it back returns the stored value."""
        do_config_set("default-interval", "30s")

        entry = get_setting_value("default_interval")
        assert entry.value == "30s"
        assert entry.source == SettingSource.FILE

    def test_config_set_creates_config_dir(self, tmp_path: Path) -> None:
        do_config_set("log-level", "INFO")
        assert (tmp_path / ".replicator" / "config").is_file()

    def test_config_set_rejects_invalid_interval(self) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            do_config_set("default-interval", "ten minutes")
        assert exc_info.value.exit_code == 1
        assert get_setting_value("default_interval").source == SettingSource.DEFAULT

    def test_config_set_unknown_key(self) -> None:
        """An unknown key prints an error and stores nothing."""
        do_config_set("nonexistent-key", "value")
        assert all(entry.source == SettingSource.DEFAULT for entry in list_settings())

    def test_config_get_unknown_key(self) -> None:
        # Prints to the Rich console, does not raise.
        do_config_get("nonexistent-key")

    def test_config_get_default(self) -> None:
        do_config_get("state-file")
        assert get_setting_value("state_file").source == SettingSource.DEFAULT

    def test_config_list_after_set(self) -> None:
        do_config_set("default-interval", "1h")
        do_config_set("insecure-http", "1")
        do_config_list()

        entries_by_cli_key = {entry.cli_key: entry for entry in list_settings()}
        assert entries_by_cli_key["default-interval"].value == "1h"
        assert entries_by_cli_key["insecure-http"].source == SettingSource.FILE
        assert entries_by_cli_key["log-level"].source == SettingSource.DEFAULT
