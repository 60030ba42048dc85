from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

_console: Console | None = None


def get_console() -> Console:
    """Return the shared Rich console instance for CLI output and log records."""
    global _console  # noqa: PLW0603
    if _console is None:
        # Version strings read badly with Rich's number highlighting.
        _console = Console(stderr=True, highlight=False)
    return _console


def resolve_file(path: Path, description: str) -> Path:
    """Resolve a path argument to an existing regular file.

    Raises:
        typer.Exit: If the path does not exist or is a directory.
    """
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        get_console().print(f"[red]{description} not found: {escape(str(resolved))}[/red]")
        raise typer.Exit(code=1)
    return resolved
