"""Console and logging helpers."""

from vault_inject.display.console import get_console, print_error
from vault_inject.display.logging_config import secret_redaction_filter, setup_logging

__all__ = [
    "get_console",
    "print_error",
    "secret_redaction_filter",
    "setup_logging",
]
