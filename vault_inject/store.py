"""Secret store: mount discovery, path routing and secret retrieval.

Vault exposes each secret engine under a mount prefix.  The store asks
Vault which engines are mounted where (one request per run), then routes
an abstract path such as ``secret/app/db`` to the engine that owns it and
issues the engine-specific request:

* KV version 2: ``GET {mount}/data/{path}``, secrets at ``data.data``
* KV version 1: ``GET {mount}/{path}``, secrets at ``data``
* Cubbyhole:    ``GET {mount}/{path}``, secrets at ``data``

Engines of any other type are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from vault_inject.constants import MOUNTS_PATH
from vault_inject.errors import (
    KeyNotFoundError,
    MountDiscoveryError,
    NonStringValueError,
    SecretNotFoundError,
    TransportError,
    UnsupportedPathError,
)

if TYPE_CHECKING:
    from vault_inject.address import SecretAddress
    from vault_inject.client import VaultClient

logger = logging.getLogger(__name__)


class StorageType(str, Enum):
    """Secret engines this tool knows how to read."""

    KV1 = "kv1"
    KV2 = "kv2"
    CUBBYHOLE = "cubbyhole"

    @property
    def display_name(self) -> str:
        return {"kv1": "KV1", "kv2": "KV2", "cubbyhole": "Cubbyhole"}[self.value]

    @classmethod
    def from_mount(cls, mount_type: str, options: Optional[Dict[str, Any]] = None) -> Optional[StorageType]:
        """Map a Vault mount ``type`` (+ ``options``) to a storage type.

        Returns ``None`` for engines that are not supported.
        """
        if mount_type == "kv":
            version = str((options or {}).get("version") or "2")
            return cls.KV1 if version == "1" else cls.KV2
        if mount_type == "cubbyhole":
            return cls.CUBBYHOLE
        return None


# ── Response schemas ─────────────────────────────────────────────────────


class _MountInfo(BaseModel):
    type: str
    options: Optional[Dict[str, Any]] = None


class _MountsData(BaseModel):
    secret: Dict[str, _MountInfo] = Field(default_factory=dict)


class _MountsResponse(BaseModel):
    data: _MountsData


# ── Routing ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Mount:
    """A supported secret engine mounted at *prefix* (no surrounding ``/``)."""

    storage_type: StorageType
    prefix: str


@dataclass(frozen=True)
class ResolvedPath:
    """Result of routing a path through a :class:`MountTable`."""

    storage_type: StorageType
    mount: str
    remaining: str


class MountTable:
    """Supported mounts, searched longest prefix first.

    A prefix owns a path when it equals the path or is followed by ``/``,
    so ``secret`` routes ``secret/app`` but not ``secretive/app``.  When
    mounts nest (``secret`` and ``secret/inner``) the longest one wins.
    """

    def __init__(self, mounts: Iterable[Mount] = ()) -> None:
        unique = {m.prefix: m for m in mounts}
        self._mounts: Tuple[Mount, ...] = tuple(
            sorted(unique.values(), key=lambda m: (-len(m.prefix), m.prefix))
        )

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> MountTable:
        """Build a table from a ``sys/internal/ui/mounts`` response body."""
        try:
            parsed = _MountsResponse.model_validate(payload)
        except ValidationError as exc:
            raise MountDiscoveryError(
                "Failed to get secret store information from Vault (unexpected response)"
            ) from exc

        mounts: List[Mount] = []
        for raw_prefix, info in parsed.data.secret.items():
            storage_type = StorageType.from_mount(info.type, info.options)
            prefix = raw_prefix.strip("/")
            if storage_type is None:
                logger.debug("Ignoring unsupported '%s' mount at '/%s'", info.type, prefix)
                continue
            mounts.append(Mount(storage_type, prefix))
        return cls(mounts)

    @property
    def mounts(self) -> Tuple[Mount, ...]:
        return self._mounts

    def resolve(self, path: str) -> ResolvedPath:
        """Split *path* into ``(storage type, mount, remaining path)``.

        Raises :class:`UnsupportedPathError` if no supported mount owns it.
        """
        path = path.lstrip("/")
        for mount in self._mounts:
            if path == mount.prefix or path.startswith(mount.prefix + "/"):
                remaining = path[len(mount.prefix):].lstrip("/")
                return ResolvedPath(mount.storage_type, mount.prefix, remaining)
        raise UnsupportedPathError(path)

    def __len__(self) -> int:
        return len(self._mounts)

    def __repr__(self) -> str:
        inner = ", ".join(f"{m.prefix}={m.storage_type.value}" for m in self._mounts)
        return f"MountTable({inner})"


# ── Store ────────────────────────────────────────────────────────────────


class SecretStore:
    """Reads secrets through a :class:`~vault_inject.client.VaultClient`.

    Parameters
    ----------
    client:
        An authenticated client.  It is only read from, so one store can
        serve many concurrent lookups.
    mounts:
        Routing table, normally obtained via :meth:`discover`.
    """

    def __init__(self, client: VaultClient, mounts: MountTable) -> None:
        self._client = client
        self._mounts = mounts

    @classmethod
    async def discover(cls, client: VaultClient) -> SecretStore:
        """Ask Vault which secret engines are mounted and build a store."""
        # /sys/mounts needs more permissions; the CLI uses this route too.
        try:
            payload = await client.get(MOUNTS_PATH)
        except TransportError as exc:
            raise MountDiscoveryError(
                f"Failed to get secret store information from Vault: {exc}"
            ) from exc
        mounts = MountTable.from_response(payload)
        logger.info("Discovered %d supported secret mount(s): %r", len(mounts), mounts)
        return cls(client, mounts)

    @property
    def mounts(self) -> MountTable:
        return self._mounts

    async def fetch(self, path: str) -> Dict[str, str]:
        """Return every key/value pair stored at *path*."""
        resolved = self._mounts.resolve(path)
        return await self.fetch_from(resolved.storage_type, resolved.mount, resolved.remaining)

    async def fetch_from(
        self,
        storage_type: StorageType,
        mount: str,
        remaining: str,
    ) -> Dict[str, str]:
        """Fetch from an explicit engine, bypassing the mount table."""
        mount = mount.strip("/")
        remaining = remaining.strip("/")
        if storage_type is StorageType.KV2:
            api_path = f"{mount}/data/{remaining}"
        else:
            api_path = f"{mount}/{remaining}"

        try:
            payload = await self._client.get(api_path)
        except TransportError as exc:
            if exc.is_not_found:
                raise SecretNotFoundError(remaining, mount, storage_type.display_name) from exc
            raise

        data: Any = payload.get("data")
        if storage_type is StorageType.KV2:
            data = data.get("data") if isinstance(data, dict) else None
        if not isinstance(data, dict):
            raise SecretNotFoundError(
                remaining,
                mount,
                storage_type.display_name,
                detail="expected an object containing key/value pairs",
            )

        out: Dict[str, str] = {}
        for key, value in data.items():
            if not isinstance(value, str):
                raise NonStringValueError(key, remaining, value)
            out[key] = value
        logger.debug(
            "Fetched %d key(s) from '/%s' (%s mount '/%s')",
            len(out),
            remaining,
            storage_type.display_name,
            mount,
        )
        return out

    async def get_key(self, path: str, key: str) -> str:
        """Return the single field *key* stored at *path*."""
        resolved = self._mounts.resolve(path)
        secrets = await self.fetch_from(resolved.storage_type, resolved.mount, resolved.remaining)
        return _pick(secrets, key, resolved.remaining, resolved.mount)

    async def fetch_address(self, address: SecretAddress) -> Dict[str, str]:
        """Fetch everything at a :class:`~vault_inject.address.SecretAddress`'s path."""
        return await self.fetch_from(address.storage_type, address.mount, address.path)

    async def get_address(self, address: SecretAddress) -> str:
        """Return the single field a legacy address points at."""
        secrets = await self.fetch_address(address)
        return _pick(secrets, address.key, address.path, address.mount)


def _pick(secrets: Dict[str, str], key: str, path: str, mount: str) -> str:
    try:
        return secrets[key]
    except KeyError:
        raise KeyNotFoundError(key, path, mount) from None
