"""Shared constants for vault-inject."""

APP_NAME = "vault-inject"
APP_VERSION = "0.1.0"

# Vault HTTP API
API_PREFIX = "v1"
MOUNTS_PATH = "sys/internal/ui/mounts"
TOKEN_LOOKUP_SELF_PATH = "auth/token/lookup-self"
DEFAULT_TIMEOUT = 30.0  # seconds per request

# Auth method mount paths used when --auth-path is not given
DEFAULT_LDAP_PATH = "auth/ldap"
DEFAULT_USERPASS_PATH = "auth/userpass"
DEFAULT_AUTH_TYPE = "userpass"

# Mounts assumed by the kv1:// kv2:// cubbyhole:// address prefixes
LEGACY_KV_MOUNT = "secret"
LEGACY_CUBBYHOLE_MOUNT = "cubbyhole"

# Token cache
CACHE_DIR_NAME = "vault_inject"
CACHE_FILENAME = "cache"

# Environment variables used as CLI defaults
ENV_VAULT_ADDR = "VAULT_ADDR"
ENV_USERNAME = "VAULT_INJECT_USERNAME"
ENV_PASSWORD = "VAULT_INJECT_PASSWORD"
ENV_TOKEN = "VAULT_INJECT_TOKEN"
ENV_AUTH_TYPE = "VAULT_INJECT_AUTH_TYPE"
ENV_AUTH_PATH = "VAULT_INJECT_AUTH_PATH"
ENV_CONFIG = "VAULT_INJECT_CONFIG"
ENV_LOG_LEVEL = "VAULT_INJECT_LOG_LEVEL"

# Logging defaults
DEFAULT_LOG_LEVEL = "WARNING"

# Shell used for filters and the target command
SHELL = "sh"
