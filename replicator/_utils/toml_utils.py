from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit

from replicator._compat import tomllib


class TomlError(Exception):
    def __init__(self, message: str, lineno: int = 0, colno: int = 0):
        super().__init__(message)
        self.lineno = lineno
        self.colno = colno

    @classmethod
    def from_decode_error(cls, exc: Exception, source: str | None = None) -> TomlError:
        """Build from a tomllib/tomli TOMLDecodeError, optionally naming the file it came from."""
        message = str(getattr(exc, "msg", str(exc)))
        if source is not None:
            message = f"TOML parsing error in file '{source}': {message}"
        return cls(
            message=message,
            lineno=int(getattr(exc, "lineno", 0)),
            colno=int(getattr(exc, "colno", 0)),
        )


def load_toml_from_content(content: str) -> dict[str, Any]:
    """Load TOML from content string."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise TomlError.from_decode_error(exc) from exc


def load_toml_from_path_if_exists(path: Path) -> dict[str, Any] | None:
    """Load TOML from a file, or return None when the file does not exist.

    Raises:
        TomlError: If TOML parsing fails, with the file path included
    """
    if not path.is_file():
        return None
    try:
        with path.open("rb") as file:
            return tomllib.load(file)
    except tomllib.TOMLDecodeError as exc:
        raise TomlError.from_decode_error(exc, source=str(path)) from exc


def save_toml_document(document: tomlkit.TOMLDocument, path: Path) -> None:
    """Write a tomlkit document, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(document), encoding="utf-8")  # type: ignore[arg-type]
