"""Run the target command with the resolved secrets in its environment."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from typing import Mapping, Optional, Sequence, Union

from vault_inject.constants import SHELL
from vault_inject.errors import VaultInjectError

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


def build_env(secrets: Mapping[str, str], base: Optional[Mapping[str, str]] = None) -> dict:
    """Inherited environment (or *base*) overlaid with *secrets*."""
    env = dict(os.environ if base is None else base)
    env.update(secrets)
    return env


def describe(command: Command) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(command)


async def run_command(command: Command, secrets: Mapping[str, str]) -> int:
    """Run *command* and return its exit status.

    A string is run with ``sh -c``; a sequence is executed directly.  A
    child killed by a signal yields ``128 + signal``, like a shell.
    """
    env = build_env(secrets)
    logger.info(
        "Running '%s' with %d injected variable(s): %s",
        describe(command),
        len(secrets),
        ", ".join(sorted(secrets)),
    )
    try:
        if isinstance(command, str):
            proc = await asyncio.create_subprocess_exec(SHELL, "-c", command, env=env)
        else:
            proc = await asyncio.create_subprocess_exec(*command, env=env)
    except OSError as exc:
        raise VaultInjectError(f"Failed to run the command '{describe(command)}': {exc}") from exc

    try:
        returncode = await proc.wait()
    finally:
        if proc.returncode is None:
            proc.terminate()
            await proc.wait()

    if returncode < 0:
        return 128 - returncode
    return returncode
