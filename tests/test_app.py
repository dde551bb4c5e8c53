"""End-to-end tests for a run and the CLI entry point."""

from __future__ import annotations

from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from tests.conftest import FakeVault
from vault_inject import cli
from vault_inject.auth import AuthMethod
from vault_inject.app import run
from vault_inject.cache import TokenCache
from vault_inject.config.schema import InjectSettings
from vault_inject.errors import (
    MissingEqualsError,
    SecretNotFoundError,
    UnauthorizedError,
)

MOUNTS = {"secret/": {"type": "kv", "options": {"version": "2"}}}


def _settings(tmp_path, **overrides: Any) -> InjectSettings:
    values: Dict[str, Any] = {
        "vault_url": "https://vault.test",
        "username": "alice",
        "password": "pw",
        "secrets": ["DB_{field}=secret/app/db/{field}"],
        "command": ["env"],
        "cache_dir": str(tmp_path),
        "prompt": False,
    }
    values.update(overrides)
    return InjectSettings.model_validate(values)


def _serve(vault: FakeVault) -> None:
    vault.add_mounts(MOUNTS)
    vault.add("POST", "auth/userpass/login/alice", body={"auth": {"client_token": "s.fresh"}})
    vault.add_kv2("secret", "app/db", {"user": "admin", "password": "hunter22"})


# ── app.run ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestRun:
    async def test_resolves_and_spawns(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=0)
        code = await run(_settings(tmp_path), transport=vault.transport, spawn=spawn)
        assert code == 0
        spawn.assert_awaited_once_with(["env"], {"DB_user": "admin", "DB_password": "hunter22"})
        assert vault.paths() == [
            "POST /v1/auth/userpass/login/alice",
            "GET /v1/sys/internal/ui/mounts",
            "GET /v1/secret/data/app/db",
        ]
        assert vault.requests[1].headers["Authorization"] == "Bearer s.fresh"
        assert TokenCache.load(str(tmp_path)).token == "s.fresh"

    async def test_exit_code_passed_through(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=42)
        assert await run(_settings(tmp_path), transport=vault.transport, spawn=spawn) == 42

    async def test_parse_error_before_any_request(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=0)
        settings = _settings(tmp_path, secrets=["GOOD=secret/app/db/user", "broken"])
        with pytest.raises(MissingEqualsError):
            await run(settings, transport=vault.transport, spawn=spawn)
        assert vault.requests == []
        spawn.assert_not_awaited()

    async def test_resolution_failure_never_spawns(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=0)
        settings = _settings(
            tmp_path,
            secrets=[
                "DB_{field}=secret/app/db/{field}",
                "X=secret/missing/x",
                "U=secret/app/db/user",
            ],
        )
        with pytest.raises(SecretNotFoundError):
            await run(settings, transport=vault.transport, spawn=spawn)
        spawn.assert_not_awaited()

    async def test_login_failure_never_spawns(self, vault: FakeVault, tmp_path) -> None:
        vault.add("POST", "auth/userpass/login/alice", 400, {"errors": ["invalid username or password"]})
        spawn = AsyncMock(return_value=0)
        with pytest.raises(UnauthorizedError):
            await run(_settings(tmp_path), transport=vault.transport, spawn=spawn)
        spawn.assert_not_awaited()

    async def test_cached_token_skips_login(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        vault.add("GET", "auth/token/lookup-self", body={"data": {}})
        cache = TokenCache(str(tmp_path))
        cache.token = "s.cached"
        cache.save()
        spawn = AsyncMock(return_value=0)
        await run(_settings(tmp_path, password=""), transport=vault.transport, spawn=spawn)
        assert "POST /v1/auth/userpass/login/alice" not in vault.paths()
        assert vault.requests[-1].headers["Authorization"] == "Bearer s.cached"

    async def test_token_method(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=0)
        settings = _settings(tmp_path, auth_method=AuthMethod.TOKEN, token="s.given")
        await run(settings, transport=vault.transport, spawn=spawn)
        assert vault.paths()[0] == "GET /v1/sys/internal/ui/mounts"
        assert vault.requests[0].headers["Authorization"] == "Bearer s.given"
        assert not (tmp_path / "cache").exists()

    async def test_filters_applied(self, vault: FakeVault, tmp_path) -> None:
        _serve(vault)
        spawn = AsyncMock(return_value=0)
        settings = _settings(tmp_path, secrets=["U=secret/app/db/user | tr a-z A-Z"])
        await run(settings, transport=vault.transport, spawn=spawn)
        spawn.assert_awaited_once_with(["env"], {"U": "ADMIN"})


# ── cli.main ─────────────────────────────────────────────────────────────


class TestMain:
    ARGV = ["--vault-url", "https://vault.test", "-s", "A=secret/a/b", "--", "true"]

    def test_exit_code_from_command(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("vault_inject.app.run", AsyncMock(return_value=5))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(self.ARGV)
        assert exc_info.value.code == 5

    def test_error_exits_1(self, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        monkeypatch.setattr(
            "vault_inject.app.run", AsyncMock(side_effect=UnauthorizedError("Vault rejected the login"))
        )
        with pytest.raises(SystemExit) as exc_info:
            cli.main(self.ARGV)
        assert exc_info.value.code == 1
        assert "Vault rejected the login" in capsys.readouterr().err

    def test_configuration_error_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        monkeypatch.delenv("VAULT_INJECT_CONFIG", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-s", "A=secret/a/b", "--", "true"])
        assert exc_info.value.code == 1

    def test_interrupt_exits_130(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("vault_inject.app.run", AsyncMock(side_effect=KeyboardInterrupt))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(self.ARGV)
        assert exc_info.value.code == 130

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert "vault-inject" in capsys.readouterr().out
