"""
vault-inject - run a command with Vault secrets exposed as environment variables.

Secrets are resolved from a Vault-compatible service, optionally piped through
filter commands, and handed to the child process without ever touching disk.
"""

from vault_inject.constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
__app_name__ = APP_NAME

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "__version__",
    "__app_name__",
]
