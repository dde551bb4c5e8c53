"""Token lifecycle: credential login, validity probe and cache policy.

:meth:`Authenticator.obtain_token` decides where a token comes from, in
this order:

1. An explicitly supplied token (``token`` method) always wins.  The
   cache is neither consulted nor updated.
2. A cached token, if cache reads are enabled and Vault still accepts it.
3. A fresh LDAP / userpass login, written back to the cache unless cache
   writes are disabled.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, StrictStr, ValidationError

from vault_inject.auth.methods import AuthCredentials, AuthMethod
from vault_inject.auth.prompt import Prompter
from vault_inject.cache import TokenCache
from vault_inject.client import VaultClient
from vault_inject.constants import TOKEN_LOOKUP_SELF_PATH
from vault_inject.errors import (
    AuthError,
    AuthTransportError,
    MalformedResponseError,
    TransportError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# Statuses Vault uses for bad credentials on the login routes.
_REJECTED_STATUSES = frozenset({400, 401, 403})


class AuthState(str, Enum):
    NO_TOKEN = "no_token"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class _LoginAuth(BaseModel):
    client_token: StrictStr


class _LoginResponse(BaseModel):
    auth: _LoginAuth


class Authenticator:
    """Obtains a Vault token for a set of credentials.

    Parameters
    ----------
    client:
        Unauthenticated client used for login and validity probes.
    prompter:
        Asked for any credential that was not supplied.
    cache:
        Optional token cache; without it every run logs in.
    """

    def __init__(
        self,
        client: VaultClient,
        prompter: Prompter,
        cache: Optional[TokenCache] = None,
    ) -> None:
        self._client = client
        self._prompter = prompter
        self._cache = cache
        self.state = AuthState.NO_TOKEN

    # ── credential resolution ───────────────────────────────────────

    def complete_credentials(self, creds: AuthCredentials) -> AuthCredentials:
        """Prompt for whatever *creds* is missing."""
        if creds.method is AuthMethod.TOKEN:
            if not creds.token:
                creds = creds.with_values(
                    token=self._prompter.prompt_hidden("Please enter Vault token: ")
                )
            return creds

        what = "LDAP " if creds.method is AuthMethod.LDAP else ""
        if not creds.username:
            creds = creds.with_values(
                username=self._prompter.prompt(f"Please enter Vault {what}username: ").strip()
            )
        if not creds.password:
            creds = creds.with_values(
                password=self._prompter.prompt_hidden(f"Please enter Vault {what}password: ")
            )
        return creds

    # ── network operations ──────────────────────────────────────────

    async def login(self, creds: AuthCredentials) -> str:
        """Log in with username/password credentials and return the token."""
        if creds.method is AuthMethod.TOKEN:
            raise AuthError("The 'token' method does not log in; supply the token directly")
        # Prompts block on the terminal; keep them off the event loop.
        creds = await asyncio.to_thread(self.complete_credentials, creds)

        path = f"{creds.mount_path}/login/{quote(creds.username, safe='')}"
        label = creds.method.label
        self.state = AuthState.AUTHENTICATING
        logger.info("Logging in to Vault via %s as '%s'", label, creds.username)
        try:
            payload = await self._client.post(path, {"password": creds.password})
        except TransportError as exc:
            self.state = AuthState.FAILED
            if exc.status_code in _REJECTED_STATUSES:
                raise UnauthorizedError(
                    f"Vault rejected the {label} login for '{creds.username}': {exc}"
                ) from exc
            raise AuthTransportError(
                f"Could not complete {label} login request to Vault: {exc}"
            ) from exc

        token = _extract_token(payload, label)
        if token is None:
            self.state = AuthState.FAILED
            raise MalformedResponseError(
                f"Could not find the client token in the {label} login response"
            )
        self.state = AuthState.AUTHENTICATED
        return token

    async def is_token_valid(self, token: str) -> bool:
        """Probe Vault with *token*; any failure means "not valid"."""
        if not token:
            return False
        probe = self._client.with_token(token)
        try:
            await probe.get(TOKEN_LOOKUP_SELF_PATH)
        except Exception as exc:  # noqa: BLE001 - an invalid token is not an error
            logger.debug("Cached token rejected (%s)", exc)
            return False
        return True

    async def obtain_token(
        self,
        creds: AuthCredentials,
        *,
        read_cache: bool = True,
        write_cache: bool = True,
    ) -> str:
        """Return a usable token, following the cache policy described above."""
        if creds.method is AuthMethod.TOKEN:
            token = (await asyncio.to_thread(self.complete_credentials, creds)).token
            self.state = AuthState.AUTHENTICATED
            logger.debug("Using explicitly supplied token; cache bypassed")
            return token

        if read_cache and self._cache is not None:
            cached = self._cache.token
            if cached and await self.is_token_valid(cached):
                logger.info("Reusing cached Vault token")
                self.state = AuthState.AUTHENTICATED
                return cached
            if cached:
                logger.info("Cached Vault token is no longer valid; logging in again")
                self._cache.clear()

        token = await self.login(creds)

        if write_cache and self._cache is not None:
            self._cache.token = token
            try:
                self._cache.save()
            except OSError as exc:
                logger.warning("Could not write token cache %s: %s", self._cache.path, exc)
        return token


def _extract_token(payload: Dict[str, Any], label: str) -> Optional[str]:
    try:
        return _LoginResponse.model_validate(payload).auth.client_token
    except ValidationError as exc:
        logger.debug("Unexpected %s login response shape: %s", label, exc.errors())
        return None
