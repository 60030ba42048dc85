from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.table import Table

from replicator.cli._console import get_console
from replicator.config.settings import load_settings
from replicator.exceptions import ReplicatorError
from replicator.subscription.state_store import FileStateStore


def do_status(state_file: Path | None = None) -> None:
    """Display the persisted state of every subscription in a state file.

    Args:
        state_file: State file to read (defaults to the ``state-file`` setting).
    """
    console = get_console()

    try:
        path = state_file or load_settings().state_file
        states = FileStateStore(path).load_all_states()
    except ReplicatorError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    if not states:
        console.print(f"[yellow]No subscription state recorded in {escape(str(path))}[/yellow]")
        return

    table = Table(title="Subscriptions", box=box.ROUNDED, show_header=True)
    table.add_column("Subscription", style="cyan")
    table.add_column("Ready")
    table.add_column("Reason")
    table.add_column("Attempted")
    table.add_column("Applied")
    table.add_column("Replicated to")
    table.add_column("Message", style="dim")

    for key in sorted(states):
        state = states[key]
        ready = state.ready
        if ready is None:
            ready_label = "[dim]unknown[/dim]"
        elif ready.status:
            ready_label = "[green]True[/green]"
        else:
            ready_label = "[red]False[/red]"
        table.add_row(
            escape(key),
            ready_label,
            escape(str(ready.reason)) if ready else "",
            escape(state.last_attempted_version or "-"),
            escape(state.last_applied_version or "-"),
            escape(state.replicated_repository_url or "-"),
            escape(ready.message) if ready else "",
        )

    console.print(table)
