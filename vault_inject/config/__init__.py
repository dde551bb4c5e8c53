"""Configuration: YAML file schema, environment expansion and settings merging."""

from vault_inject.config.env import expand_env_vars
from vault_inject.config.loader import build_settings, load_config_file
from vault_inject.config.schema import InjectConfig, InjectSettings

__all__ = [
    "InjectConfig",
    "InjectSettings",
    "build_settings",
    "expand_env_vars",
    "load_config_file",
]
