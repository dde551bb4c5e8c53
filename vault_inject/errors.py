"""
Defines project-specific exception classes.
"""
from typing import List, Optional, Sequence


class VaultInjectError(Exception):
    """Base class for all custom exceptions in vault-inject."""
    pass


class ConfigurationError(VaultInjectError):
    """Raised when command-line options or the configuration file are invalid."""
    pass


class InvalidAuthMethodError(ConfigurationError):
    """Raised when an unknown authentication method is selected."""

    def __init__(self, value: str, valid: Sequence[str]):
        self.value = value
        self.valid = list(valid)
        options = ", ".join(f"'{v}'" for v in self.valid)
        super().__init__(
            f"'{value}' is not a valid authentication type (try one of {options}).")


# ── Parse errors ─────────────────────────────────────────────────────────


class ParseError(VaultInjectError):
    """Raised when a mapping, template or secret address is malformed."""
    pass


class DuplicateParameterError(ParseError):
    """A template uses the same ``{name}`` more than once."""

    def __init__(self, name: str, pattern: str):
        self.name = name
        self.pattern = pattern
        super().__init__(
            f"The parameter '{name}' was used more than once in '{pattern}'")


class MissingEqualsError(ParseError):
    """A mapping has no ``=`` separating the variable from the secret path."""

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(
            "Expected secrets of the form 'ENV_VAR=path/to/secret/key' "
            f"but got '{spec}'")


class EmptyFilterError(ParseError):
    """A ``|`` in a mapping does not forward to a command."""

    def __init__(self, position: int, spec: str):
        self.position = position
        self.spec = spec
        super().__init__(
            f"Every '|' must forward to a command, but command {position} "
            f"of '{spec}' is missing")


class MissingPathError(ParseError):
    """A secret reference does not contain a ``path/key`` split."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(
            "Expected the secret path to have at least one '/' in it "
            f"(path/to/secret/key) but got '{source}'")


class UnboundParameterError(ParseError):
    """The variable template uses parameters the key template never captures."""

    def __init__(self, env_var: str, key: str, missing: Sequence[str]):
        self.env_var = env_var
        self.key = key
        self.missing = sorted(missing)
        super().__init__(
            f"The environment variable pattern '{env_var}' contains template "
            f"parameters not seen in the corresponding key '{key}': "
            f"{', '.join(self.missing)}")


class TrailingSlashError(ParseError):
    """A legacy secret address ends in ``/``."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Secret paths should not end in '/' but '{address}' does")


class UnknownSchemeError(ParseError):
    """A legacy secret address has no recognised ``<type>://`` prefix."""

    def __init__(self, address: str, prefixes: Sequence[str]):
        self.address = address
        options = ", ".join(f"'{p}'" for p in prefixes)
        super().__init__(f"'{address}' does not start with one of {options}")


# ── Transport ────────────────────────────────────────────────────────────


class TransportError(VaultInjectError):
    """
    Raised when a request to Vault cannot be completed or returns
    a non-success status.
    """

    def __init__(self,
                 message: str,
                 path: Optional[str] = None,
                 status_code: Optional[int] = None,
                 errors: Optional[List[str]] = None):
        self.path = path
        self.status_code = status_code
        self.errors = list(errors or [])

        full_msg = message
        if path:
            full_msg += f" (path: '/{path}')"
        if self.errors:
            full_msg += ": " + "; ".join(self.errors)
        super().__init__(full_msg)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


# ── Authentication ───────────────────────────────────────────────────────


class AuthError(VaultInjectError):
    """Raised when a token cannot be obtained."""
    pass


class UnauthorizedError(AuthError):
    """Vault rejected the supplied credentials."""
    pass


class MalformedResponseError(AuthError):
    """The login response did not contain ``auth.client_token``."""
    pass


class AuthTransportError(AuthError):
    """The login request failed for a reason other than bad credentials."""
    pass


# ── Resolution ───────────────────────────────────────────────────────────


class ResolutionError(VaultInjectError):
    """Raised when a secret cannot be resolved to key/value pairs."""
    pass


class MountDiscoveryError(ResolutionError):
    """The list of secret mounts could not be obtained."""
    pass


class UnsupportedPathError(ResolutionError):
    """No supported secret engine is mounted above the requested path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"The path '/{path}' is not supported "
            "(no known secret storage is mounted here)")


class SecretNotFoundError(ResolutionError):
    """Nothing usable was found at the requested path."""

    def __init__(self, path: str, mount: str, store_name: str, detail: str = ""):
        self.path = path
        self.mount = mount
        msg = (f"Could not find any secrets at path '/{path}' from "
               f"{store_name} store mounted at '/{mount}'")
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class KeyNotFoundError(ResolutionError):
    """A single requested field is absent from an otherwise valid secret."""

    def __init__(self, key: str, path: str, mount: str):
        self.key = key
        self.path = path
        self.mount = mount
        super().__init__(
            f"Could not find the secret '{key}' at path '/{path}' "
            f"in the store mounted at '/{mount}'")


class NonStringValueError(ResolutionError):
    """A secret field holds something other than a string."""

    def __init__(self, key: str, path: str, value: object):
        self.key = key
        self.path = path
        super().__init__(
            f"The value for '{key}' at path '/{path}' is not a string; "
            f"is {type(value).__name__}")


# ── Filters ──────────────────────────────────────────────────────────────


class FilterFailedError(VaultInjectError):
    """A post-processing command produced no output."""

    def __init__(self, command: str, stderr: str = "", returncode: Optional[int] = None):
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        msg = f"The command '{command}' failed"
        if returncode:
            msg += f" (exit status {returncode})"
        msg += f":\n\n'{stderr.strip()}'"
        super().__init__(msg)
