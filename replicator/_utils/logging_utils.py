import logging

from rich.logging import RichHandler

from replicator.cli._console import get_console

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: str = "WARNING") -> None:
    """Route ``replicator`` log records to the shared Rich console.

    Only the CLI calls this; as a library the package leaves handler setup to its host.

    Args:
        level: Standard logging level name. Unknown names fall back to WARNING.
    """
    level_name = level.upper()
    if level_name not in _VALID_LEVELS:
        level_name = "WARNING"

    handler = RichHandler(console=get_console(), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    package_logger = logging.getLogger("replicator")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level_name)
    package_logger.propagate = False
