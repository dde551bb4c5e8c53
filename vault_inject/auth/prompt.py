"""Interactive credential prompts.

The :class:`Authenticator` never reads the terminal directly; it asks a
:class:`Prompter` so that tests and non-interactive runs can swap in a
different implementation.
"""

from __future__ import annotations

import abc
import getpass
import sys

from vault_inject.errors import ConfigurationError


class Prompter(abc.ABC):
    """Source of credentials that were not supplied up front."""

    @abc.abstractmethod
    def prompt(self, message: str) -> str:
        """Ask for a value and echo what the user types."""

    @abc.abstractmethod
    def prompt_hidden(self, message: str) -> str:
        """Ask for a value without echoing it (passwords, tokens)."""


class ConsolePrompter(Prompter):
    """Prompts on stderr so stdout stays clean for the wrapped command."""

    def prompt(self, message: str) -> str:
        sys.stderr.write(message)
        sys.stderr.flush()
        line = sys.stdin.readline()
        if not line:
            raise ConfigurationError("No input available to read a username from")
        return line.rstrip("\r\n")

    def prompt_hidden(self, message: str) -> str:
        try:
            return getpass.getpass(message, stream=sys.stderr)
        except EOFError as exc:
            raise ConfigurationError("No input available to read a password from") from exc


class NonInteractivePrompter(Prompter):
    """Refuses to prompt; used with ``--no-prompt``."""

    def prompt(self, message: str) -> str:
        raise ConfigurationError(
            f"{message.strip().rstrip(':')} is required but prompting is disabled"
        )

    def prompt_hidden(self, message: str) -> str:
        return self.prompt(message)
