"""Replicator settings.

Reads and writes ``~/.replicator/config`` using a dotenv-style format
(``KEY=VALUE``, ``#`` comments, blank lines allowed).

Resolution order: environment variables > config file > defaults.
"""

from __future__ import annotations

import os
from datetime import timedelta
from enum import unique
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from replicator._compat import StrEnum
from replicator._utils.duration_utils import parse_duration
from replicator.exceptions import DurationError

# ── Types ───────────────────────────────────────────────────────────


@unique
class SettingSource(StrEnum):
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


class SettingEntry(NamedTuple):
    key: str
    cli_key: str
    value: str
    source: SettingSource


class ReplicatorSettings(BaseModel):
    """Resolved settings handed to the reconcile driver and the CLI."""

    model_config = ConfigDict(frozen=True)

    default_interval: timedelta = timedelta(minutes=10)
    state_file: Path = Path.home() / ".replicator" / "state.toml"
    log_level: str = "WARNING"
    insecure_http: bool = False


# ── Paths ───────────────────────────────────────────────────────────

CONFIG_DIR = Path.home() / ".replicator"
CONFIG_PATH = CONFIG_DIR / "config"

# ── Setting keys ───────────────────────────────────────────────────

# Map from internal key to setting key (env var name and file key share the same names)
_SETTING_KEYS: dict[str, str] = {
    "default_interval": "REPLICATOR_DEFAULT_INTERVAL",
    "state_file": "REPLICATOR_STATE_FILE",
    "log_level": "REPLICATOR_LOG_LEVEL",
    "insecure_http": "REPLICATOR_INSECURE_HTTP",
}

_DEFAULTS: dict[str, str] = {
    "default_interval": "10m",
    "state_file": str(CONFIG_DIR / "state.toml"),
    "log_level": "WARNING",
    "insecure_http": "0",
}

# Map from CLI flag names (kebab-case) to internal keys
_KEY_ALIASES: dict[str, str] = {
    "default-interval": "default_interval",
    "state-file": "state_file",
    "log-level": "log_level",
    "insecure-http": "insecure_http",
}

VALID_KEYS: list[str] = list(_KEY_ALIASES.keys())

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def resolve_key(cli_key: str) -> str | None:
    """Resolve a CLI flag name to an internal setting key."""
    return _KEY_ALIASES.get(cli_key)


# ── Dotenv parser / serializer ─────────────────────────────────────


def _parse_dotenv(content: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        key, separator, value = trimmed.partition("=")
        if not separator:
            continue
        result[key.strip()] = value.strip()
    return result


def _serialize_dotenv(entries: dict[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in entries.items())


# ── File I/O ───────────────────────────────────────────────────────


def _read_config_file() -> dict[str, str]:
    if not CONFIG_PATH.is_file():
        return {}
    try:
        return _parse_dotenv(CONFIG_PATH.read_text(encoding="utf-8"))
    except OSError:
        return {}


def _write_config_file(entries: dict[str, str]) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(_serialize_dotenv(entries), encoding="utf-8")


# ── Public API ─────────────────────────────────────────────────────


def load_raw_settings() -> dict[str, str]:
    """Load all settings as strings with resolution: env > file > defaults."""
    file_entries = _read_config_file()
    merged = dict(_DEFAULTS)

    for internal_key, file_key in _SETTING_KEYS.items():
        if file_key in file_entries:
            merged[internal_key] = file_entries[file_key]

    for internal_key, env_name in _SETTING_KEYS.items():
        env_val = os.environ.get(env_name)
        if env_val is not None:
            merged[internal_key] = env_val

    return merged


def load_settings() -> ReplicatorSettings:
    """Load and type the settings.

    Raises:
        DurationError: If ``default-interval`` is not a valid duration.
    """
    raw = load_raw_settings()
    try:
        default_interval = parse_duration(raw["default_interval"])
    except DurationError as exc:
        msg = f"Invalid default-interval setting: {exc}"
        raise DurationError(msg) from exc

    return ReplicatorSettings(
        default_interval=default_interval,
        state_file=Path(raw["state_file"]).expanduser(),
        log_level=raw["log_level"].upper(),
        insecure_http=raw["insecure_http"].strip().lower() in _TRUTHY,
    )


def _cli_key_for(internal_key: str) -> str:
    return next(cli_k for cli_k, int_k in _KEY_ALIASES.items() if int_k == internal_key)


def get_setting_value(key: str) -> SettingEntry:
    """Get a single setting value with its source.

    Args:
        key: Internal key (e.g. "default_interval", "state_file").

    Returns:
        A SettingEntry with the value and its source.
    """
    cli_key = _cli_key_for(key)
    setting_key = _SETTING_KEYS[key]

    env_val = os.environ.get(setting_key)
    if env_val is not None:
        return SettingEntry(key=key, cli_key=cli_key, value=env_val, source=SettingSource.ENV)

    file_entries = _read_config_file()
    if setting_key in file_entries:
        return SettingEntry(key=key, cli_key=cli_key, value=file_entries[setting_key], source=SettingSource.FILE)

    return SettingEntry(key=key, cli_key=cli_key, value=_DEFAULTS[key], source=SettingSource.DEFAULT)


def set_setting_value(key: str, value: str) -> None:
    """Set a setting value in the config file."""
    file_entries = _read_config_file()
    file_entries[_SETTING_KEYS[key]] = value
    _write_config_file(file_entries)


def list_settings() -> list[SettingEntry]:
    """List all setting values with their sources."""
    return [get_setting_value(internal_key) for internal_key in _KEY_ALIASES.values()]
