"""Authentication methods and the credentials each one needs."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional

from vault_inject.constants import DEFAULT_LDAP_PATH, DEFAULT_USERPASS_PATH
from vault_inject.errors import InvalidAuthMethodError


class AuthMethod(str, Enum):
    """Ways of obtaining a Vault token."""

    LDAP = "ldap"
    USERPASS = "userpass"
    TOKEN = "token"

    @property
    def default_path(self) -> Optional[str]:
        """Mount path of the auth backend when none is configured."""
        return _DEFAULT_PATHS.get(self)

    @property
    def label(self) -> str:
        return {"ldap": "LDAP", "userpass": "username-password", "token": "token"}[self.value]


_DEFAULT_PATHS: Dict[AuthMethod, str] = {
    AuthMethod.LDAP: DEFAULT_LDAP_PATH,
    AuthMethod.USERPASS: DEFAULT_USERPASS_PATH,
}

_ALIASES: Dict[str, AuthMethod] = {
    "ldap": AuthMethod.LDAP,
    "token": AuthMethod.TOKEN,
    "userpass": AuthMethod.USERPASS,
    "user-pass": AuthMethod.USERPASS,
    "username-password": AuthMethod.USERPASS,
    "username": AuthMethod.USERPASS,
    "user": AuthMethod.USERPASS,
}


def parse_auth_method(value: str) -> AuthMethod:
    """Convert a user-supplied selector (case-insensitive) to an :class:`AuthMethod`."""
    if isinstance(value, AuthMethod):
        return value
    try:
        return _ALIASES[value.strip().lower()]
    except KeyError:
        raise InvalidAuthMethodError(value, [m.value for m in AuthMethod]) from None


@dataclass(frozen=True)
class AuthCredentials:
    """Everything needed to log in with *method*.

    Empty strings mean "not supplied"; the missing values are prompted for
    before any request is made.
    """

    method: AuthMethod
    username: str = ""
    password: str = ""
    token: str = ""
    path: str = ""

    @property
    def mount_path(self) -> str:
        """The configured auth path, or the method's default."""
        return (self.path or self.method.default_path or "").strip("/")

    def with_values(self, **changes: str) -> AuthCredentials:
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"AuthCredentials(method={self.method.value!r}, username={self.username!r}, "
            f"password={'****' if self.password else ''!r}, "
            f"token={'****' if self.token else ''!r}, path={self.path!r})"
        )
