"""One vault-inject run, from settings to the child's exit status.

Order of operations:

1. Parse every mapping (no network activity happens if any is invalid).
2. Obtain a token (explicit token, cached token, or fresh login).
3. Discover the secret mounts and resolve all mappings concurrently.
4. Spawn the command with the resolved variables, only if step 3
   succeeded for every mapping.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from vault_inject.auth import Authenticator, AuthMethod, ConsolePrompter, NonInteractivePrompter, Prompter
from vault_inject.cache import TokenCache
from vault_inject.client import VaultClient
from vault_inject.config.schema import InjectSettings
from vault_inject.display.logging_config import secret_redaction_filter
from vault_inject.mapping import parse_mappings
from vault_inject.pipeline import resolve_mappings
from vault_inject.runner import Command, run_command
from vault_inject.store import SecretStore

logger = logging.getLogger(__name__)

SpawnFn = Callable[[Command, Mapping[str, str]], Awaitable[int]]


def _make_cache(settings: InjectSettings) -> Optional[TokenCache]:
    if settings.auth_method is AuthMethod.TOKEN:
        return None
    if settings.cache_read:
        return TokenCache.load(settings.cache_dir)
    if settings.cache_write:
        return TokenCache(settings.cache_dir)
    return None


async def run(
    settings: InjectSettings,
    *,
    prompter: Optional[Prompter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    spawn: SpawnFn = run_command,
) -> int:
    """Resolve all secrets for *settings* and run its command.

    Returns the command's exit status.  Raises a
    :class:`~vault_inject.errors.VaultInjectError` (and never spawns the
    command) if anything fails before the command starts.
    """
    mappings = parse_mappings(settings.secrets)
    if prompter is None:
        prompter = ConsolePrompter() if settings.prompt else NonInteractivePrompter()

    client = VaultClient(settings.vault_url, timeout=settings.timeout, transport=transport)
    try:
        auth = Authenticator(client, prompter, _make_cache(settings))
        token = await auth.obtain_token(
            settings.credentials(),
            read_cache=settings.cache_read,
            write_cache=settings.cache_write,
        )
        secret_redaction_filter.register(token)

        store = await SecretStore.discover(client.with_token(token))
        env = await resolve_mappings(store, mappings)
    finally:
        await client.close()

    return await spawn(settings.command, env)
