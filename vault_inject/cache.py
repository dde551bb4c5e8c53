"""Per-user token cache.

Remembers the last token obtained by a fresh login so that subsequent
runs can skip the login while the token is still accepted by Vault.  The
cache holds a single slot and lives at
``$XDG_CACHE_HOME/vault_inject/cache`` (``~/.cache/vault_inject/cache``
when ``XDG_CACHE_HOME`` is unset).

Reading never fails: a missing or corrupt file is an empty cache.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional

from pydantic import BaseModel, ValidationError

from vault_inject.constants import CACHE_DIR_NAME, CACHE_FILENAME

logger = logging.getLogger(__name__)


def default_cache_dir() -> str:
    """Return the per-user cache directory for vault-inject."""
    return os.path.join(
        os.environ.get("XDG_CACHE_HOME") or os.path.expanduser("~/.cache"),
        CACHE_DIR_NAME,
    )


class CacheRecord(BaseModel):
    """On-disk JSON shape of the cache."""

    last_token: Optional[str] = None


class TokenCache:
    """File-backed single-token cache.

    Parameters
    ----------
    cache_dir:
        Directory holding the cache file.  Created on first save.
    record:
        Initial contents, normally produced by :meth:`load`.
    """

    def __init__(self, cache_dir: Optional[str] = None, record: Optional[CacheRecord] = None) -> None:
        self._cache_dir = cache_dir or default_cache_dir()
        self._record = record or CacheRecord()

    @classmethod
    def load(cls, cache_dir: Optional[str] = None) -> TokenCache:
        """Read the cache from disk, returning an empty cache on any failure."""
        cache = cls(cache_dir)
        path = cache.path
        try:
            with open(path, "rb") as fh:
                cache._record = CacheRecord.model_validate_json(fh.read())
            logger.debug("Token cache loaded from %s", path)
        except FileNotFoundError:
            logger.debug("No token cache at %s", path)
        except (OSError, ValidationError, ValueError) as exc:
            logger.warning("Ignoring unreadable token cache %s: %s", path, exc)
        return cache

    @property
    def path(self) -> str:
        return os.path.join(self._cache_dir, CACHE_FILENAME)

    @property
    def token(self) -> Optional[str]:
        """The cached token, or ``None``."""
        return self._record.last_token or None

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._record = CacheRecord(last_token=value)

    def clear(self) -> None:
        self._record = CacheRecord()

    def save(self) -> None:
        """Write the cache atomically (temp file, fsync, rename) with mode 0600."""
        os.makedirs(self._cache_dir, exist_ok=True)
        payload = self._record.model_dump_json(exclude_none=True).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=self._cache_dir, prefix=".cache_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Token cache written to %s", self.path)
