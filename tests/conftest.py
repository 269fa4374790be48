"""Shared test fixtures for scopecache.

Provides isolated config environments, ready-made cache directories and
stores, and output state management. These fixtures are
discovered by pytest and available to all test modules without imports.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from scopecache.cache import FileCache
from scopecache.models import CacheConfig
from scopecache.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager holds references to sys.stdout/sys.stderr taken at
    creation time. When CliRunner swaps those streams for a test, the cached
    references go stale afterwards, so a fresh manager is forced.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME, XDG_CACHE_HOME and XDG_DATA_HOME at
    subdirectories of tmp_path, clears SCOPECACHE_* variables and changes
    the working directory to tmp_path.
    """
    monkeypatch.setattr("scopecache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["SCOPECACHE_PATH", "SCOPECACHE_ENABLE_PURGE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """An existing, empty cache base directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def cache_config(cache_dir: Path) -> CacheConfig:
    return CacheConfig(path=cache_dir, enable_purge=True)


@pytest.fixture
def store(cache_config: CacheConfig) -> FileCache:
    return FileCache(cache_config)


@pytest.fixture
def set_mtime() -> Callable[[Path, float], None]:
    """Return a helper that sets a file's access and modification time."""

    def _set(path: Path, mtime: float) -> None:
        os.utime(path, (mtime, mtime))

    return _set

