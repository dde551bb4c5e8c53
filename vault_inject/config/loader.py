"""Configuration loading and merging.

Loads the optional YAML configuration file, expands ``${ENV_VAR}``
placeholders, validates it against :class:`InjectConfig`, and merges it
with command-line options and environment variables into
:class:`InjectSettings`.

Precedence for every value: CLI flag > environment variable > config
file > built-in default.  Secret mappings from the file come first,
followed by those given with ``--secret``.
"""

import argparse
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from vault_inject.config.env import expand_env_vars
from vault_inject.config.schema import InjectConfig, InjectSettings
from vault_inject.constants import (
    DEFAULT_AUTH_TYPE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_TIMEOUT,
    ENV_AUTH_PATH,
    ENV_AUTH_TYPE,
    ENV_CONFIG,
    ENV_LOG_LEVEL,
    ENV_PASSWORD,
    ENV_TOKEN,
    ENV_USERNAME,
    ENV_VAULT_ADDR,
)
from vault_inject.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML config file from *cfg_fpath*.

    Raises :class:`ConfigurationError` on I/O or parse errors.
    """
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _YAML_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML files (.yaml, .yml) are supported."
        )

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a YAML mapping (dictionary)."
        )
    return raw_data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"]) or "(root)"
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def load_config_file(cfg_fpath: str, environ: Optional[Mapping[str, str]] = None) -> InjectConfig:
    """Load, expand and validate a YAML config file."""
    raw_data = expand_env_vars(_read_config_file(cfg_fpath), environ)
    try:
        config = InjectConfig.model_validate(raw_data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration file {cfg_fpath}:\n{_format_validation_errors(exc)}"
        ) from exc
    logger.info("Loaded configuration from %s", os.path.abspath(cfg_fpath))
    return config


def _first(*values: Optional[Any]) -> Optional[Any]:
    """Return the first value that is not ``None`` or an empty string."""
    for v in values:
        if v is not None and v != "":
            return v
    return None


def build_settings(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None,
) -> InjectSettings:
    """Merge CLI *args*, *environ* and the config file into settings."""
    env = os.environ if environ is None else environ

    cfg_path = _first(getattr(args, "config", None), env.get(ENV_CONFIG))
    file_cfg = load_config_file(cfg_path, env) if cfg_path else InjectConfig()

    command: Any = getattr(args, "command", None)
    trailing = list(getattr(args, "args", None) or [])
    if command and trailing:
        raise ConfigurationError("Provide the command either with --command or after '--', not both")
    if not command:
        command = trailing

    secrets = list(file_cfg.secrets) + list(getattr(args, "secrets", None) or [])
    if not secrets:
        raise ConfigurationError("One or more secret mappings should be provided using '--secret'")
    if not command:
        raise ConfigurationError("A command to run should be provided using '--command' or after '--'")

    vault_url = _first(getattr(args, "vault_url", None), env.get(ENV_VAULT_ADDR), file_cfg.vault_url)
    if not vault_url:
        raise ConfigurationError(
            f"The Vault URL should be provided using '--vault-url' or {ENV_VAULT_ADDR}"
        )

    no_cache = bool(getattr(args, "no_cache", False))
    values: Dict[str, Any] = {
        "vault_url": vault_url,
        "auth_method": _first(
            getattr(args, "auth_type", None), env.get(ENV_AUTH_TYPE), file_cfg.auth.type
        ) or DEFAULT_AUTH_TYPE,
        "auth_path": _first(
            getattr(args, "auth_path", None), env.get(ENV_AUTH_PATH), file_cfg.auth.path
        ) or "",
        "username": _first(
            getattr(args, "username", None), env.get(ENV_USERNAME), file_cfg.auth.username
        ) or "",
        "password": _first(getattr(args, "password", None), env.get(ENV_PASSWORD)) or "",
        "token": _first(getattr(args, "token", None), env.get(ENV_TOKEN)) or "",
        "secrets": secrets,
        "command": command,
        "cache_read": file_cfg.cache.read and not (no_cache or getattr(args, "no_cache_read", False)),
        "cache_write": file_cfg.cache.write and not (no_cache or getattr(args, "no_cache_write", False)),
        "cache_dir": file_cfg.cache.dir,
        "timeout": _first(getattr(args, "timeout", None), file_cfg.timeout) or DEFAULT_TIMEOUT,
        "prompt": file_cfg.prompt and not getattr(args, "no_prompt", False),
        "log_level": _first(
            getattr(args, "log_level", None), env.get(ENV_LOG_LEVEL), file_cfg.log_level
        ) or DEFAULT_LOG_LEVEL,
        "log_file": getattr(args, "log_file", None),
    }
    try:
        return InjectSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid options:\n{_format_validation_errors(exc)}"
        ) from exc
