"""Vault authentication: methods, credential prompting and token lifecycle."""

from vault_inject.auth.manager import Authenticator, AuthState
from vault_inject.auth.methods import AuthCredentials, AuthMethod, parse_auth_method
from vault_inject.auth.prompt import ConsolePrompter, NonInteractivePrompter, Prompter

__all__ = [
    "AuthCredentials",
    "AuthMethod",
    "AuthState",
    "Authenticator",
    "ConsolePrompter",
    "NonInteractivePrompter",
    "Prompter",
    "parse_auth_method",
]
