"""Tests for the ``scopecache cache`` command group."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from scopecache.app import app, register_commands
from scopecache.cache import FileCache
from scopecache.cache.keys import canonicalize_key, fingerprint
from scopecache.config import save_global_config
from scopecache.models import CacheConfig, GlobalConfig

register_commands()
runner = CliRunner()

KEY = '{"kind": "credential"}'


@pytest.fixture
def base(isolated_config: Path) -> Path:
    path = isolated_config / "store"
    path.mkdir()
    return path


def _invoke(base: Path, *args: str, **kwargs: Any):
    return runner.invoke(app, ["--path", str(base), *args], **kwargs)


def _entry_path(base: Path, scope: str, key: Any) -> Path:
    return base / scope / (fingerprint(canonicalize_key(key)) + ".cache")


class TestPut:
    def test_put_value(self, base: Path) -> None:
        result = _invoke(base, "cache", "put", "token", KEY, "--value", "abc")
        assert result.exit_code == 0, result.output
        assert "Stored 3 bytes" in result.output

        store = FileCache(CacheConfig(path=base)).set_scope("token")
        assert store.set_key({"kind": "credential"}).load() == b"abc"

    def test_put_from_file(self, base: Path, tmp_path: Path) -> None:
        source = tmp_path / "payload.bin"
        source.write_bytes(b"\x00\x01binary")
        result = _invoke(base, "cache", "put", "blobs", "one", "--file", str(source))
        assert result.exit_code == 0, result.output
        store = FileCache(CacheConfig(path=base)).set_scope("blobs").set_key("one")
        assert store.load() == b"\x00\x01binary"

    def test_put_from_stdin(self, base: Path) -> None:
        result = _invoke(base, "cache", "put", "feeds", "example", input="piped data")
        assert result.exit_code == 0, result.output
        store = FileCache(CacheConfig(path=base)).set_scope("feeds").set_key("example")
        assert store.load() == b"piped data"

    def test_put_value_and_file_conflict(self, base: Path, tmp_path: Path) -> None:
        source = tmp_path / "p"
        source.write_text("x")
        result = _invoke(
            base, "cache", "put", "s", "k", "--value", "a", "--file", str(source)
        )
        assert result.exit_code == 2
        assert "either --value or --file" in result.output

    def test_put_missing_file(self, base: Path, tmp_path: Path) -> None:
        result = _invoke(
            base, "cache", "put", "s", "k", "--file", str(tmp_path / "missing")
        )
        assert result.exit_code == 2
        assert "Cannot read" in result.output

    def test_put_invalid_scope(self, base: Path) -> None:
        result = _invoke(base, "cache", "put", "..", "k", "--value", "a")
        assert result.exit_code == 3

    def test_put_missing_base_path(self, isolated_config: Path) -> None:
        result = _invoke(isolated_config / "nope", "cache", "put", "s", "k", "--value", "a")
        assert result.exit_code == 3
        assert "does not exist" in result.output


class TestGet:
    def test_get_writes_raw_payload(self, base: Path) -> None:
        _invoke(base, "cache", "put", "token", KEY, "--value", "abc")
        result = _invoke(base, "cache", "get", "token", KEY)
        assert result.exit_code == 0
        assert result.stdout_bytes == b"abc"

    def test_key_field_order_irrelevant(self, base: Path) -> None:
        _invoke(base, "cache", "put", "s", '{"a": 1, "b": 2}', "--value", "v")
        result = _invoke(base, "cache", "get", "s", '{"b": 2, "a": 1}')
        assert result.exit_code == 0
        assert result.stdout_bytes == b"v"

    def test_get_absent_exits_not_found(self, base: Path) -> None:
        result = _invoke(base, "cache", "get", "token", KEY)
        assert result.exit_code == 4
        assert "No entry" in result.output

    def test_get_corrupt_exits_6(self, base: Path) -> None:
        path = _entry_path(base, "s", "k")
        path.parent.mkdir(parents=True)
        path.write_text("garbage")
        result = _invoke(base, "cache", "get", "s", "k")
        assert result.exit_code == 6
        assert "Corrupt cache entry" in result.output


class TestStat:
    def test_stat_existing(self, base: Path) -> None:
        _invoke(base, "cache", "put", "token", KEY, "--value", "abc")
        result = _invoke(base, "--json", "-q", "cache", "stat", "token", KEY)
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["scope"] == "token"
        assert data["key"] == '{"kind":"credential"}'
        assert data["fingerprint"] == fingerprint('{"kind":"credential"}')
        assert data["path"] == str(_entry_path(base, "token", {"kind": "credential"}))
        assert data["exists"] is True
        assert data["size_bytes"] > 0
        assert data["age_seconds"] >= 0

    def test_stat_absent(self, base: Path) -> None:
        result = _invoke(base, "--json", "-q", "cache", "stat", "token", KEY)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["exists"] is False
        assert data["modified"] == "-"
        assert data["age_seconds"] is None
        assert data["size_bytes"] is None

    def test_stat_plain_key_is_string(self, base: Path) -> None:
        result = _invoke(base, "--json", "-q", "cache", "stat", "feeds", "example")
        assert json.loads(result.stdout)["key"] == '"example"'


class TestDelete:
    def test_delete_existing(self, base: Path) -> None:
        _invoke(base, "cache", "put", "s", "k", "--value", "v")
        result = _invoke(base, "cache", "delete", "s", "k")
        assert result.exit_code == 0
        assert "Deleted" in result.output
        assert not _entry_path(base, "s", "k").exists()

    def test_delete_absent(self, base: Path) -> None:
        result = _invoke(base, "cache", "delete", "s", "k")
        assert result.exit_code == 0
        assert "No entry" in result.output


class TestPurge:
    def _age(self, base: Path, scope: str, key: str, seconds: float) -> Path:
        _invoke(base, "cache", "put", scope, key, "--value", "v")
        path = _entry_path(base, scope, key)
        then = path.stat().st_mtime - seconds
        os.utime(path, (then, then))
        return path

    def test_purge_removes_old_entries(self, base: Path) -> None:
        old = self._age(base, "s", "old", 7200)
        fresh = self._age(base, "s", "fresh", 0)

        result = _invoke(base, "--json", "-q", "cache", "purge", "s", "--max-age", "3600")

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["removed"] == 1
        assert report["enabled"] is True
        assert not old.exists()
        assert fresh.exists()

    def test_purge_uses_configured_default(self, base: Path) -> None:
        save_global_config(
            GlobalConfig(cache=CacheConfig(purge_max_age_seconds=60))
        )
        old = self._age(base, "s", "old", 120)
        result = _invoke(base, "cache", "purge", "s")
        assert result.exit_code == 0, result.output
        assert not old.exists()

    def test_no_purge_flag_disables(self, base: Path) -> None:
        old = self._age(base, "s", "old", 7200)
        result = _invoke(base, "--no-purge", "cache", "purge", "s", "--max-age", "1")
        assert result.exit_code == 0
        assert "disabled" in result.output
        assert old.exists()

    def test_env_disables_purge(
        self, base: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        old = self._age(base, "s", "old", 7200)
        monkeypatch.setenv("SCOPECACHE_ENABLE_PURGE", "false")
        result = _invoke(base, "cache", "purge", "s", "--max-age", "1")
        assert result.exit_code == 0
        assert old.exists()

    def test_negative_max_age_rejected(self, base: Path) -> None:
        result = _invoke(base, "cache", "purge", "s", "--max-age", "-1")
        assert result.exit_code == 2


class TestStats:
    def test_stats_for_scope(self, base: Path) -> None:
        _invoke(base, "cache", "put", "s", "a", "--value", "v")
        _invoke(base, "cache", "put", "s", "b", "--value", "v")
        result = _invoke(base, "--json", "-q", "cache", "stats", "s")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["scope"] == "s"
        assert data["entries"] == 2

    def test_stats_all_scopes_table(self, base: Path) -> None:
        _invoke(base, "cache", "put", "token", "k", "--value", "v")
        _invoke(base, "cache", "put", "feeds", "k", "--value", "v")
        result = _invoke(base, "--json", "-q", "cache", "stats")
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row["scope"] for row in rows] == ["feeds", "token"]
        assert all(row["entries"] == "1" for row in rows)

    def test_stats_no_scopes(self, base: Path) -> None:
        result = _invoke(base, "cache", "stats")
        assert result.exit_code == 0
        assert "No scopes found" in result.output
