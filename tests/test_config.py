"""Tests for settings merging and the YAML configuration file."""

from __future__ import annotations

import argparse
from typing import Any

import pytest

from vault_inject.auth import AuthMethod
from vault_inject.cli import _parse_args
from vault_inject.config import build_settings, expand_env_vars, load_config_file
from vault_inject.errors import ConfigurationError

BASE_ARGV = ["--vault-url", "https://vault.test", "-s", "A=secret/app/a", "--", "env"]


def _settings(argv: list, environ: Any = None):
    return build_settings(_parse_args(argv), environ if environ is not None else {})


class TestExpandEnvVars:
    def test_expands(self) -> None:
        env = {"HOST": "vault.test"}
        assert expand_env_vars("https://${HOST}:8200", env) == "https://vault.test:8200"

    def test_default(self) -> None:
        assert expand_env_vars("${MISSING:-fallback}", {}) == "fallback"

    def test_unset_left_alone(self) -> None:
        assert expand_env_vars("${MISSING}", {}) == "${MISSING}"

    def test_recursive(self) -> None:
        data = {"a": ["${X}", 3], "b": {"c": "${X}"}}
        assert expand_env_vars(data, {"X": "y"}) == {"a": ["y", 3], "b": {"c": "y"}}


class TestBuildSettings:
    def test_minimal(self) -> None:
        s = _settings(BASE_ARGV)
        assert s.vault_url == "https://vault.test"
        assert s.secrets == ["A=secret/app/a"]
        assert s.command == ["env"]
        assert s.auth_method is AuthMethod.USERPASS
        assert s.cache_read and s.cache_write and s.prompt
        assert s.timeout == 30.0
        assert s.log_level == "WARNING"

    def test_command_option(self) -> None:
        s = _settings(["--vault-url", "https://v", "-s", "A=s/a/b", "-c", "echo $A"])
        assert s.command == "echo $A"

    def test_command_twice_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            _settings(["--vault-url", "https://v", "-s", "A=s/a/b", "-c", "x", "--", "y"])

    def test_missing_command(self) -> None:
        with pytest.raises(ConfigurationError, match="command"):
            _settings(["--vault-url", "https://v", "-s", "A=s/a/b"])

    def test_missing_secrets(self) -> None:
        with pytest.raises(ConfigurationError, match="secret"):
            _settings(["--vault-url", "https://v", "--", "env"])

    def test_missing_vault_url(self) -> None:
        with pytest.raises(ConfigurationError, match="VAULT_ADDR"):
            _settings(["-s", "A=s/a/b", "--", "env"])

    def test_env_defaults(self) -> None:
        environ = {
            "VAULT_ADDR": "https://from-env",
            "VAULT_INJECT_AUTH_TYPE": "ldap",
            "VAULT_INJECT_USERNAME": "bob",
            "VAULT_INJECT_PASSWORD": "pw",
            "VAULT_INJECT_LOG_LEVEL": "debug",
        }
        s = _settings(["-s", "A=s/a/b", "--", "env"], environ)
        assert s.vault_url == "https://from-env"
        assert s.auth_method is AuthMethod.LDAP
        assert (s.username, s.password) == ("bob", "pw")
        assert s.log_level == "debug"

    def test_cli_beats_env(self) -> None:
        environ = {"VAULT_ADDR": "https://from-env", "VAULT_INJECT_AUTH_TYPE": "ldap"}
        s = _settings(BASE_ARGV + [], environ)
        assert s.vault_url == "https://vault.test"
        s = _settings(["--auth-type", "token", "--token", "s.x"] + BASE_ARGV, environ)
        assert s.auth_method is AuthMethod.TOKEN
        assert s.credentials().token == "s.x"

    def test_invalid_auth_type(self) -> None:
        with pytest.raises(ConfigurationError):
            _settings(["--auth-type", "kerberos"] + BASE_ARGV)

    def test_invalid_url(self) -> None:
        with pytest.raises(ConfigurationError, match="http"):
            _settings(["--vault-url", "vault.test", "-s", "A=s/a/b", "--", "env"])

    def test_cache_flags(self) -> None:
        s = _settings(["--no-cache-read"] + BASE_ARGV)
        assert (s.cache_read, s.cache_write) == (False, True)
        s = _settings(["--no-cache-write"] + BASE_ARGV)
        assert (s.cache_read, s.cache_write) == (True, False)
        s = _settings(["--no-cache"] + BASE_ARGV)
        assert (s.cache_read, s.cache_write) == (False, False)

    def test_no_prompt(self) -> None:
        assert not _settings(["--no-prompt"] + BASE_ARGV).prompt

    def test_password_hidden_from_repr(self) -> None:
        s = _settings(["--password", "hunter22"] + BASE_ARGV)
        assert "hunter22" not in repr(s)

    def test_namespace_without_optional_attributes(self) -> None:
        args = argparse.Namespace(vault_url="https://v", secrets=["A=s/a/b"], args=["env"])
        s = build_settings(args, {})
        assert s.command == ["env"]


class TestConfigFile:
    def _write(self, tmp_path, text: str, name: str = "vi.yaml") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    def test_load(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            """
vault_url: https://${VAULT_HOST}
auth:
  type: ldap
  path: auth/corp
  username: alice
secrets:
  - DB_{f}=secret/app/db/{f}
cache:
  write: false
timeout: 5
prompt: false
log_level: info
""",
        )
        cfg = load_config_file(path, {"VAULT_HOST": "vault.corp"})
        assert cfg.vault_url == "https://vault.corp"
        assert cfg.auth.type == "ldap"
        assert cfg.secrets == ["DB_{f}=secret/app/db/{f}"]
        assert cfg.cache.write is False
        assert cfg.timeout == 5

    def test_empty_file(self, tmp_path) -> None:
        cfg = load_config_file(self._write(tmp_path, ""))
        assert cfg.secrets == []

    def test_wrong_extension(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="extension"):
            load_config_file(self._write(tmp_path, "{}", name="vi.json"))

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            load_config_file(str(tmp_path / "absent.yaml"))

    def test_not_a_mapping(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config_file(self._write(tmp_path, "- a\n- b\n"))

    def test_password_not_allowed(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="password"):
            load_config_file(self._write(tmp_path, "auth:\n  password: nope\n"))

    def test_invalid_auth_type(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            load_config_file(self._write(tmp_path, "auth:\n  type: kerberos\n"))

    def test_merge_with_cli(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            "vault_url: https://file\nsecrets: ['F=secret/f/v']\n"
            "auth: {type: ldap, username: alice}\ncache: {read: false}\n",
        )
        s = _settings(["--config", path, "-s", "C=secret/c/v", "--username", "bob", "--", "env"])
        assert s.vault_url == "https://file"
        assert s.secrets == ["F=secret/f/v", "C=secret/c/v"]
        assert s.auth_method is AuthMethod.LDAP
        assert s.username == "bob"
        assert s.cache_read is False

    def test_config_from_env(self, tmp_path) -> None:
        path = self._write(tmp_path, "vault_url: https://file\nsecrets: ['F=secret/f/v']\n")
        s = _settings(["--", "env"], {"VAULT_INJECT_CONFIG": path})
        assert s.secrets == ["F=secret/f/v"]
