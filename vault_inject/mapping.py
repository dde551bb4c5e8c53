"""Secret mappings: ``ENV_VAR=path/to/secret/key | filter | filter``.

Usage::

    from vault_inject.mapping import parse_mapping

    mapping = parse_mapping("DB_{field} = secret/app/creds/{field} | tr -d ' '")
    mapping.path                        # "secret/app/creds"
    mapping.env_var_for("user")         # "DB_user"
    mapping.filters                     # ("tr -d ' '",)

The key segment and the variable name are :class:`~vault_inject.template.Template`
objects, so one lookup that returns many keys can populate many variables.
The right hand side may instead be a legacy address (``kv2://app/db/password``)
which pins the secret engine rather than routing through the mount table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from vault_inject.address import SecretAddress, has_scheme
from vault_inject.errors import (
    EmptyFilterError,
    MissingEqualsError,
    MissingPathError,
    ParseError,
    UnboundParameterError,
)
from vault_inject.template import Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretMapping:
    """A single user rule mapping secret keys to environment variables."""

    path: str
    key: Template
    env_var: Template
    filters: Tuple[str, ...] = ()
    address: Optional[SecretAddress] = None
    source: str = ""

    @property
    def is_single_key(self) -> bool:
        """``True`` when the key names exactly one field (no placeholders)."""
        return self.key.is_literal

    def env_var_for(self, raw_key: str) -> Optional[str]:
        """Return the variable name for *raw_key*, or ``None`` if it doesn't match."""
        captures = self.key.match(raw_key)
        if captures is None:
            return None
        return self.env_var.render(captures)

    def __str__(self) -> str:
        return self.source or f"{self.env_var}={self.path}/{self.key}"


def parse_mapping(spec: str) -> SecretMapping:
    """Parse a mapping string into a :class:`SecretMapping`.

    Raises a :class:`~vault_inject.errors.ParseError` subclass when the
    string is malformed or the variable template uses a placeholder the
    key template does not capture.
    """
    idx = spec.find("=")
    if idx < 0:
        raise MissingEqualsError(spec)

    env_var_str = spec[:idx].strip()
    if not env_var_str:
        raise ParseError(f"Expected an environment variable name before '=' in '{spec}'")
    segments = [s.strip() for s in spec[idx + 1:].split("|")]
    for n, segment in enumerate(segments, start=1):
        if not segment:
            raise EmptyFilterError(n, spec)
    path_and_key, filters = segments[0], tuple(segments[1:])

    address: Optional[SecretAddress] = None
    if has_scheme(path_and_key):
        address = SecretAddress.parse(path_and_key)
        path, key_str = address.path, address.key
    else:
        path, key_str = _split_path_and_key(path_and_key)
        path = path.lstrip("/")

    key = Template(key_str)
    env_var = Template(env_var_str)
    if not env_var.params_subset_of(key):
        raise UnboundParameterError(env_var_str, key_str, env_var.params - key.params)

    mapping = SecretMapping(
        path=path,
        key=key,
        env_var=env_var,
        filters=filters,
        address=address,
        source=spec.strip(),
    )
    logger.debug("Parsed mapping %r -> path='%s' key=%r", env_var_str, path, key)
    return mapping


def parse_mappings(specs: List[str]) -> List[SecretMapping]:
    """Parse every mapping, failing on the first invalid one."""
    return [parse_mapping(s) for s in specs]


def _split_path_and_key(source: str) -> Tuple[str, str]:
    idx = source.rfind("/")
    if idx <= 0:
        raise MissingPathError(source)
    return source[:idx], source[idx + 1:]

