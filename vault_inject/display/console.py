"""Console output for the CLI.

Everything is written to stderr: stdout belongs to the wrapped command.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

from vault_inject.display.logging_config import secret_redaction_filter

_console: Optional[Console] = None


def get_console() -> Console:
    """Return the shared stderr console."""
    global _console
    if _console is None:
        _console = Console(stderr=True, highlight=False)
    return _console


def print_error(message: str) -> None:
    """Print a failure message in yellow, with any known secrets redacted."""
    text = secret_redaction_filter.redact(message)
    get_console().print(f"[yellow]{escape(text)}[/yellow]")
