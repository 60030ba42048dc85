"""Replicator CLI.

Offline companion to the reconcile driver: try version selection and
replication decisions, validate subscription manifests, inspect persisted
subscription state, and manage settings.
"""

from pathlib import Path
from typing import Annotated

import typer

from replicator._utils.logging_utils import configure_logging
from replicator.cli.commands.config_cmd import do_config_get, do_config_list, do_config_set
from replicator.cli.commands.resolve_cmd import do_decide, do_resolve
from replicator.cli.commands.status_cmd import do_status
from replicator.cli.commands.subscription_cmd import do_validate_subscription
from replicator.config.settings import get_setting_value

app = typer.Typer(
    name="replicator",
    no_args_is_help=True,
    help="Component replicator: resolve versions, validate subscriptions, and inspect replication state.",
)


@app.callback()
def main_callback(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to the log-level setting"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or get_setting_value("log_level").value)


# ── Subscription subcommand group ────────────────────────────────────
subscription_app = typer.Typer(
    name="subscription",
    no_args_is_help=True,
    help="Work with subscription manifests.",
)
app.add_typer(subscription_app, name="subscription")


@subscription_app.command("validate", help="Validate a subscription manifest (TOML)")
def subscription_validate_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="Path to the subscription manifest"),
    ],
) -> None:
    """Validate a subscription manifest."""
    do_validate_subscription(path=path)


# ── Config subcommand group ──────────────────────────────────────────
config_app = typer.Typer(
    name="config",
    no_args_is_help=True,
    help="Manage replicator settings.",
)
app.add_typer(config_app, name="config")


@config_app.command("set", help="Set a configuration value")
def config_set_cmd(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (e.g. 'default-interval', 'state-file', 'log-level', 'insecure-http')"),
    ],
    value: Annotated[
        str,
        typer.Argument(help="Value to set"),
    ],
) -> None:
    """Set a setting value."""
    do_config_set(key=key, value=value)


@config_app.command("get", help="Get a configuration value")
def config_get_cmd(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (e.g. 'default-interval', 'state-file', 'log-level', 'insecure-http')"),
    ],
) -> None:
    """Get a setting value and its source."""
    do_config_get(key=key)


@config_app.command("list", help="List all configuration values")
def config_list_cmd() -> None:
    """List all setting values with their sources."""
    do_config_list()


# ── Top-level commands ───────────────────────────────────────────────


@app.command("resolve", help="Select the version a constraint resolves to among the given versions")
def resolve_cmd(
    versions: Annotated[
        list[str],
        typer.Argument(help="Version strings as published by the registry (e.g. v1.0.0 1.2.0)"),
    ],
    constraint: Annotated[
        str | None,
        typer.Option("--constraint", "-c", help="Semver constraint (e.g. '>=1.0.0 <2.0.0'); omit to select the highest"),
    ] = None,
) -> None:
    """Resolve a constraint against a list of versions."""
    do_resolve(versions=versions, constraint=constraint)


@app.command("decide", help="Show whether a candidate version would be replicated")
def decide_cmd(
    candidate: Annotated[
        str,
        typer.Argument(help="Candidate version selected by the resolver"),
    ],
    applied: Annotated[
        str | None,
        typer.Option("--applied", "-a", help="Last applied version (omit if nothing was replicated yet)"),
    ] = None,
) -> None:
    """Decide between proceeding and skipping."""
    do_decide(candidate=candidate, applied=applied)


@app.command("status", help="Show persisted subscription state")
def status_cmd(
    state_file: Annotated[
        Path | None,
        typer.Option("--state-file", "-s", help="State file (defaults to the state-file setting)"),
    ] = None,
) -> None:
    """Display the persisted state of all subscriptions."""
    do_status(state_file=state_file)
