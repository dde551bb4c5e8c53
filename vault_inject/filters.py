"""Post-processing filters: pipe a secret value through shell commands.

Each filter is run with ``sh -c``; it reads the current value on stdin and
its stdout, minus one trailing newline, becomes the next value.  A filter
that prints nothing is treated as failed and its stderr is reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from vault_inject.constants import SHELL
from vault_inject.errors import FilterFailedError

logger = logging.getLogger(__name__)


async def run_filter(value: str, command: str) -> str:
    """Pipe *value* through *command* and return its output."""
    try:
        proc = await asyncio.create_subprocess_exec(
            SHELL,
            "-c",
            command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise FilterFailedError(command, stderr=str(exc)) from exc

    try:
        stdout, stderr = await proc.communicate(value.encode("utf-8"))
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    output = stdout.decode("utf-8", errors="replace")
    if output.endswith("\n"):
        output = output[:-1]
    if not output:
        raise FilterFailedError(
            command,
            stderr=stderr.decode("utf-8", errors="replace"),
            returncode=proc.returncode,
        )
    if proc.returncode:
        logger.warning("Filter '%s' exited with status %d", command, proc.returncode)
    return output


async def apply_filters(value: str, commands: Sequence[str]) -> str:
    """Run *value* through each command in order."""
    for command in commands:
        logger.debug("Applying filter '%s'", command)
        value = await run_filter(value, command)
    return value
