"""Validate a subscription manifest and show what it resolves to."""

from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.table import Table

from replicator._utils.duration_utils import format_duration, parse_duration
from replicator.cli._console import get_console, resolve_file
from replicator.exceptions import DurationError, SubscriptionError
from replicator.subscription.manifest_parser import parse_subscription_toml
from replicator.subscription.models import is_valid_repository_url
from replicator.version.semver import SemVerError, parse_constraint


def do_validate_subscription(path: Path) -> None:
    """Parse a subscription manifest and check the fields the reconcile driver validates at run time.

    Args:
        path: Path to the subscription TOML file.
    """
    console = get_console()

    path = resolve_file(path, "Subscription file")
    try:
        subscription = parse_subscription_toml(path.read_text(encoding="utf-8"))
    except SubscriptionError as exc:
        console.print(f"[red]{escape(str(path))} is invalid: {escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    spec = subscription.spec
    problems: list[str] = []
    try:
        parse_constraint(spec.semver)
    except SemVerError as exc:
        problems.append(exc.message)
    interval_display = "(default)"
    if spec.interval:
        try:
            interval_display = format_duration(parse_duration(spec.interval))
        except DurationError as exc:
            problems.append(exc.message)
    for label, repository in (("source", spec.source), ("destination", spec.destination)):
        if repository is not None and not is_valid_repository_url(repository.url):
            problems.append(f"Malformed {label} repository URL '{repository.url}'")

    if problems:
        for problem in problems:
            console.print(f"[red]{escape(problem)}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"Subscription {escape(str(subscription.id))}", box=box.ROUNDED, show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Component", escape(spec.component))
    table.add_row("Source", escape(spec.source.url))
    table.add_row("Destination", escape(spec.destination.url) if spec.destination else "(replicate in place)")
    table.add_row("Constraint", escape(spec.semver or "*"))
    table.add_row("Interval", interval_display)
    if spec.verify:
        table.add_row("Verify", escape(", ".join(policy.name for policy in spec.verify)))
    table.add_row("Sign destination", "yes" if spec.sign_destination else "no")
    console.print(table)
    console.print(f"[green]{escape(str(path))} is valid.[/green]")
