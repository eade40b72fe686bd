"""
Shared rich console used for pipeline logging.

Every module prints through the same Console so the CLI and the HTTP
server can silence or redirect output in one place.
"""

from rich.console import Console

console = Console()


def configure_console(quiet: bool = False, log_level: str = "INFO") -> Console:
    """Apply logging settings to the shared console."""
    console.quiet = quiet or log_level.upper() in ("ERROR", "CRITICAL")
    return console
