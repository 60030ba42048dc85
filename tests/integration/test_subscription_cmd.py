"""Integration tests for replicator.cli.commands.subscription_cmd."""

import textwrap
from pathlib import Path

import pytest
import typer

from replicator.cli.commands.subscription_cmd import do_validate_subscription

VALID_MANIFEST = textwrap.dedent(
    """\
    [subscription]
    namespace = "ocm-system"
    name = "podinfo"
    component = "github.com/acme/podinfo"
    semver = "^1.0"
    interval = "90m"

    [source]
    url = "ghcr.io/acme/components"

    [destination]
    url = "registry.internal:5000/mirror"
    """
)


class TestSubscriptionCmd:
    """Tests for do_validate_subscription with manifests on disk."""

    def _write(self, tmp_path: Path, content: str) -> Path:
        path = tmp_path / "subscription.toml"
        path.write_text(content, encoding="utf-8")
        return path

    def test_valid_manifest(self, tmp_path: Path) -> None:
        do_validate_subscription(self._write(tmp_path, VALID_MANIFEST))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            do_validate_subscription(tmp_path / "absent.toml")
        assert exc_info.value.exit_code == 1

    def test_invalid_toml(self, tmp_path: Path) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            do_validate_subscription(self._write(tmp_path, "[subscription\n"))
        assert exc_info.value.exit_code == 1

    @pytest.mark.parametrize(
        ("original", "replacement"),
        [
            ('semver = "^1.0"', 'semver = ">>>1"'),
            ('interval = "90m"', 'interval = "ninety minutes"'),
            ('url = "registry.internal:5000/mirror"', 'url = "not a url"'),
        ],
    )
    def test_invalid_field(self, tmp_path: Path, original: str, replacement: str) -> None:
        path = self._write(tmp_path, VALID_MANIFEST.replace(original, replacement))
        with pytest.raises(typer.Exit) as exc_info:
            do_validate_subscription(path)
        assert exc_info.value.exit_code == 1
