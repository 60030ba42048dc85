"""Resolve and decide commands: run version selection offline, without a registry."""

import typer
from rich.markup import escape

from replicator.cli._console import get_console
from replicator.replication.decision import ReplicationAction, decide
from replicator.subscription.models import SubscriptionState
from replicator.version.semver import SemVerError, build_version_set, parse_constraint, parse_version, select_best


def do_resolve(versions: list[str], constraint: str | None = None) -> None:
    """Select the version a subscription with ``constraint`` would replicate from ``versions``.

    Args:
        versions: Raw version strings, as a registry would list them.
        constraint: Semver constraint; None selects the highest version.
    """
    console = get_console()

    try:
        parsed_constraint = parse_constraint(constraint)
    except SemVerError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    version_set, warnings = build_version_set(versions)
    for warning in warnings:
        console.print(f"[yellow]Skipped '{escape(warning.raw)}': {escape(warning.message)}[/yellow]")

    if not version_set:
        console.print("[red]No valid semver versions given.[/red]")
        raise typer.Exit(code=1)

    selected = select_best(version_set, parsed_constraint)
    if selected is None:
        available = ", ".join(version.original for version in version_set.sorted_descending())
        console.print(f"[red]No version satisfies '{escape(str(parsed_constraint))}' (available: {escape(available)})[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]Selected {escape(selected.original)}[/green] [dim](constraint: {escape(str(parsed_constraint))})[/dim]")


def do_decide(candidate: str, applied: str | None = None) -> None:
    """Show whether ``candidate`` would be replicated over the ``applied`` version.

    Args:
        candidate: The resolved candidate version.
        applied: The last applied version; None means nothing applied yet.
    """
    console = get_console()

    try:
        candidate_version = parse_version(candidate)
    except SemVerError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    decision = decide(candidate_version, SubscriptionState(last_applied_version=applied or ""))

    match decision.action:
        case ReplicationAction.PROCEED:
            console.print(f"[green]proceed[/green]: {escape(candidate)} is newer than {escape(decision.baseline.original)}")
        case ReplicationAction.SKIP_UP_TO_DATE if decision.regressed:
            console.print(f"[yellow]skip[/yellow]: {escape(candidate)} is older than applied {escape(decision.baseline.original)}, no downgrade")
        case ReplicationAction.SKIP_UP_TO_DATE:
            console.print(f"[cyan]skip[/cyan]: {escape(candidate)} is already applied")
