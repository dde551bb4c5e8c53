"""Tests for the on-disk token cache."""

from __future__ import annotations

import json
import os
import stat

import pytest

from vault_inject.cache import TokenCache, default_cache_dir


class TestDefaultCacheDir:
    def test_uses_xdg_cache_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XDG_CACHE_HOME", "/tmp/xdg")
        assert default_cache_dir() == os.path.join("/tmp/xdg", "vault_inject")

    def test_falls_back_to_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_cache_dir() == os.path.join(str(tmp_path), ".cache", "vault_inject")


class TestTokenCache:
    def test_missing_file_is_empty(self, tmp_path) -> None:
        cache = TokenCache.load(str(tmp_path / "nowhere"))
        assert cache.token is None

    def test_save_and_load(self, tmp_path) -> None:
        cache = TokenCache(str(tmp_path / "vi"))
        cache.token = "s.abc"
        cache.save()

        path = tmp_path / "vi" / "cache"
        assert json.loads(path.read_text()) == {"last_token": "s.abc"}
        assert TokenCache.load(str(tmp_path / "vi")).token == "s.abc"

    def test_file_mode_is_private(self, tmp_path) -> None:
        cache = TokenCache(str(tmp_path))
        cache.token = "s.abc"
        cache.save()
        mode = stat.S_IMODE(os.stat(cache.path).st_mode)
        assert mode == 0o600

    def test_save_overwrites(self, tmp_path) -> None:
        cache = TokenCache(str(tmp_path))
        cache.token = "one"
        cache.save()
        cache.token = "two"
        cache.save()
        assert TokenCache.load(str(tmp_path)).token == "two"
        # No temp files left behind
        assert sorted(os.listdir(tmp_path)) == ["cache"]

    def test_cleared_cache_writes_empty_object(self, tmp_path) -> None:
        cache = TokenCache(str(tmp_path))
        cache.token = "one"
        cache.clear()
        cache.save()
        assert json.loads((tmp_path / "cache").read_text()) == {}
        assert TokenCache.load(str(tmp_path)).token is None

    @pytest.mark.parametrize(
        "content",
        ["not json", "[1, 2]", '{"last_token": 42}', ""],
    )
    def test_corrupt_file_is_empty(self, tmp_path, content: str) -> None:
        (tmp_path / "cache").write_text(content)
        assert TokenCache.load(str(tmp_path)).token is None

    def test_unknown_fields_are_ignored(self, tmp_path) -> None:
        (tmp_path / "cache").write_text('{"last_token": "s.x", "other": 1}')
        assert TokenCache.load(str(tmp_path)).token == "s.x"

    def test_empty_token_reads_as_none(self, tmp_path) -> None:
        (tmp_path / "cache").write_text('{"last_token": ""}')
        assert TokenCache.load(str(tmp_path)).token is None
