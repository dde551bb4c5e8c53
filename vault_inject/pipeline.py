"""Mapping resolution: turn parsed mappings into environment variables.

For each :class:`~vault_inject.mapping.SecretMapping` the pipeline fetches
the secret, selects the keys the mapping's key template matches, names
the variables with its env-var template and runs each value through the
mapping's filters.

All mappings are resolved concurrently.  If any of them fails the rest are
cancelled and the error propagates, so the caller never sees a partial
environment.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Sequence, Tuple, TypeVar

from vault_inject.display.logging_config import secret_redaction_filter
from vault_inject.filters import apply_filters
from vault_inject.mapping import SecretMapping
from vault_inject.store import SecretStore

logger = logging.getLogger(__name__)

FilterFn = Callable[[str, Sequence[str]], Awaitable[str]]
T = TypeVar("T")


async def select_values(store: SecretStore, mapping: SecretMapping) -> List[Tuple[str, str]]:
    """Fetch *mapping*'s secret and return ``(env_var, raw value)`` pairs."""
    if mapping.is_single_key:
        key = mapping.key.render()
        if mapping.address is not None:
            value = await store.get_address(mapping.address)
        else:
            value = await store.get_key(mapping.path, key)
        return [(mapping.env_var.render(), value)]

    if mapping.address is not None:
        secrets = await store.fetch_address(mapping.address)
    else:
        secrets = await store.fetch(mapping.path)

    selected: List[Tuple[str, str]] = []
    for raw_key, value in secrets.items():
        env_var = mapping.env_var_for(raw_key)
        if env_var is None:
            continue
        selected.append((env_var, value))
    if not selected:
        logger.warning(
            "Mapping '%s' matched none of the %d key(s) at '/%s'",
            mapping,
            len(secrets),
            mapping.path,
        )
    return selected


async def _all_or_nothing(aws: Sequence[Awaitable[T]]) -> List[T]:
    """Run *aws* concurrently and return their results in order.

    On the first failure every unfinished one is cancelled and awaited
    before the error is raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return [task.result() for task in tasks]


async def resolve_mapping(
    store: SecretStore,
    mapping: SecretMapping,
    *,
    filter_fn: FilterFn = apply_filters,
) -> List[Tuple[str, str]]:
    """Resolve one mapping to ``(env_var, final value)`` pairs."""
    selected = await select_values(store, mapping)
    for _, value in selected:
        secret_redaction_filter.register(value)
    if not mapping.filters:
        return selected

    values = await _all_or_nothing(
        [filter_fn(value, mapping.filters) for _, value in selected]
    )
    out: List[Tuple[str, str]] = []
    for (env_var, _), value in zip(selected, values):
        secret_redaction_filter.register(value)
        out.append((env_var, value))
    return out


async def resolve_mappings(
    store: SecretStore,
    mappings: Sequence[SecretMapping],
    *,
    filter_fn: FilterFn = apply_filters,
) -> Dict[str, str]:
    """Resolve every mapping concurrently (all-or-nothing).

    When two mappings produce the same variable, the one declared later
    wins.
    """
    results = await _all_or_nothing(
        [resolve_mapping(store, m, filter_fn=filter_fn) for m in mappings]
    )

    env: Dict[str, str] = {}
    for mapping, pairs in zip(mappings, results):
        for env_var, value in pairs:
            if env_var in env:
                logger.warning("Variable '%s' is set by more than one mapping; using '%s'", env_var, mapping)
            env[env_var] = value
    logger.info("Resolved %d environment variable(s) from %d mapping(s)", len(env), len(mappings))
    return env
