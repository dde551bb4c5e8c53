"""Legacy single-key secret addresses (``kv2://app/db/password``).

The scheme pins the secret engine, so no mount discovery is needed:

* ``kv1://path/key``      → ``GET secret/path``, field ``data.key``
* ``kv2://path/key``      → ``GET secret/data/path``, field ``data.data.key``
* ``cubbyhole://path/key`` → ``GET cubbyhole/path``, field ``data.key``
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from vault_inject.constants import LEGACY_CUBBYHOLE_MOUNT, LEGACY_KV_MOUNT
from vault_inject.errors import MissingPathError, TrailingSlashError, UnknownSchemeError
from vault_inject.store import StorageType

_PREFIXES: Dict[str, StorageType] = {
    "kv1://": StorageType.KV1,
    "kv2://": StorageType.KV2,
    "cubbyhole://": StorageType.CUBBYHOLE,
}

_LEGACY_MOUNTS: Dict[StorageType, str] = {
    StorageType.KV1: LEGACY_KV_MOUNT,
    StorageType.KV2: LEGACY_KV_MOUNT,
    StorageType.CUBBYHOLE: LEGACY_CUBBYHOLE_MOUNT,
}


def has_scheme(text: str) -> bool:
    """``True`` if *text* starts with one of the legacy address prefixes."""
    stripped = text.lstrip("/")
    return any(stripped.startswith(prefix) for prefix in _PREFIXES)


@dataclass(frozen=True)
class SecretAddress:
    """A secret pinned to a storage type, path and field name."""

    storage_type: StorageType
    path: str
    key: str

    @property
    def mount(self) -> str:
        """Mount point the scheme implies."""
        return _LEGACY_MOUNTS[self.storage_type]

    @classmethod
    def parse(cls, text: str) -> SecretAddress:
        """Parse ``<type>://path/to/secret/key``.

        Raises :class:`TrailingSlashError` if the address ends in ``/``,
        :class:`UnknownSchemeError` if the prefix is not recognised and
        :class:`MissingPathError` if there is no ``path/key`` split.
        """
        s = text.strip().lstrip("/")
        if s.endswith("/"):
            raise TrailingSlashError(s)

        for prefix, storage_type in _PREFIXES.items():
            if s.startswith(prefix):
                rest = s[len(prefix):]
                break
        else:
            raise UnknownSchemeError(s, list(_PREFIXES))

        idx = rest.rfind("/")
        if idx < 0:
            raise MissingPathError(s)
        return cls(storage_type=storage_type, path=rest[:idx], key=rest[idx + 1:])

    def __str__(self) -> str:
        scheme = next(p for p, t in _PREFIXES.items() if t is self.storage_type)
        return f"{scheme}{self.path}/{self.key}"
