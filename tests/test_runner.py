"""Tests for running the wrapped command."""

from __future__ import annotations

import pytest

from vault_inject.errors import VaultInjectError
from vault_inject.runner import build_env, describe, run_command


class TestBuildEnv:
    def test_overlays_secrets(self) -> None:
        env = build_env({"B": "secret"}, base={"A": "1", "B": "old"})
        assert env == {"A": "1", "B": "secret"}

    def test_inherits_process_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VI_TEST_INHERITED", "yes")
        assert build_env({})["VI_TEST_INHERITED"] == "yes"

    def test_describe(self) -> None:
        assert describe("echo hi") == "echo hi"
        assert describe(["printf", "%s", "a b"]) == "printf %s 'a b'"


@pytest.mark.asyncio
class TestRunCommand:
    async def test_shell_string(self, tmp_path) -> None:
        out = tmp_path / "out"
        code = await run_command(f'printf %s "$DB_PASSWORD" > {out}', {"DB_PASSWORD": "hunter22"})
        assert code == 0
        assert out.read_text() == "hunter22"

    async def test_argv_list(self, tmp_path) -> None:
        out = tmp_path / "out"
        code = await run_command(
            ["sh", "-c", 'printf %s "$TOKEN" > "$1"', "sh", str(out)], {"TOKEN": "t0k"}
        )
        assert code == 0
        assert out.read_text() == "t0k"

    async def test_exit_status_propagates(self) -> None:
        assert await run_command("exit 7", {}) == 7

    async def test_signal_maps_to_128_plus(self) -> None:
        assert await run_command("kill -TERM $$", {}) == 128 + 15

    async def test_missing_executable(self) -> None:
        with pytest.raises(VaultInjectError):
            await run_command(["/nonexistent/definitely-not-here"], {})
