"""Age-based eviction for a cache scope.

The sweeper never looks inside entries: it walks the scope directory
bottom-up and unlinks every file whose modification time is older than the
threshold. Placeholder files kept by version control or deployment tooling
(``.gitkeep``, ``.keep``) are left alone.

Sweeping is best-effort. A file that vanishes between listing and unlinking
(for example because another sweep got there first) is counted as an error
and skipped; the pass always continues with the remaining entries.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

from scopecache.cache.keys import CACHE_SUFFIX, normalize_scope
from scopecache.exceptions import ConfigurationError
from scopecache.models import CacheConfig, PurgeReport, ScopeStats

logger = logging.getLogger(__name__)


class Sweeper:
    """Remove stale entries from scopes under a cache base directory.

    Args:
        config: Cache configuration. ``config.enable_purge`` gates whether
            :meth:`purge` deletes anything.
    """

    SKIP_NAMES = frozenset({".gitkeep", ".keep"})

    def __init__(self, config: CacheConfig) -> None:
        if config.path is None:
            raise ConfigurationError("No cache path configured")
        self._config = config
        self._base_path = Path(config.path)

    @property
    def enabled(self) -> bool:
        return self._config.enable_purge

    def scope_path(self, scope: str) -> Path:
        return self._base_path / normalize_scope(scope)

    def purge(
        self,
        scope: str,
        max_age_seconds: float,
        now: Optional[float] = None,
    ) -> PurgeReport:
        """Delete every file in *scope* last modified before ``now - max_age_seconds``.

        Children are visited before their parent directories, and nested
        directories emptied by the sweep are removed. The scope directory
        itself is kept.

        Args:
            scope: Scope name, normalised the same way the store does.
            max_age_seconds: Entries strictly older than this are removed.
            now: Reference time in epoch seconds. Defaults to
                :func:`time.time`.

        Returns:
            A :class:`~scopecache.models.PurgeReport`. When purging is
            disabled the report has ``enabled=False`` and nothing is touched.
        """
        normalized = normalize_scope(scope)
        report = PurgeReport(scope=normalized, enabled=self.enabled)
        if not self.enabled:
            logger.debug("Purge disabled; leaving scope '%s' untouched", normalized)
            return report

        root = self._base_path / normalized
        if not root.is_dir():
            return report

        cutoff = (time.time() if now is None else now) - max_age_seconds

        for dirpath, _dirnames, filenames in os.walk(root, topdown=False):
            for name in filenames:
                if name in self.SKIP_NAMES:
                    report.skipped += 1
                    continue
                report.scanned += 1
                file_path = os.path.join(dirpath, name)
                try:
                    if os.lstat(file_path).st_mtime < cutoff:
                        os.unlink(file_path)
                        report.removed += 1
                except OSError as exc:
                    report.errors += 1
                    logger.debug("Could not remove %s: %s", file_path, exc)

            if Path(dirpath) != root:
                try:
                    if not os.listdir(dirpath):
                        os.rmdir(dirpath)
                        report.removed_dirs += 1
                except OSError as exc:
                    logger.debug("Could not remove directory %s: %s", dirpath, exc)

        logger.info(
            "Purged %d of %d entries from scope '%s' (older than %ss)",
            report.removed,
            report.scanned,
            normalized,
            max_age_seconds,
        )
        return report

    def stats(self, scope: str) -> ScopeStats:
        """Count the ``.cache`` entries in *scope* and summarise their sizes and ages."""
        normalized = normalize_scope(scope)
        root = self._base_path / normalized
        stats = ScopeStats(scope=normalized, directory=str(root))
        if not root.is_dir():
            return stats

        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                if not name.endswith(CACHE_SUFFIX):
                    continue
                try:
                    st = os.stat(os.path.join(dirpath, name))
                except OSError:
                    continue  # removed mid-walk
                stats.entries += 1
                stats.total_bytes += st.st_size
                if stats.oldest_mtime is None or st.st_mtime < stats.oldest_mtime:
                    stats.oldest_mtime = st.st_mtime
                if stats.newest_mtime is None or st.st_mtime > stats.newest_mtime:
                    stats.newest_mtime = st.st_mtime
        return stats

    def list_scopes(self) -> list[str]:
        """Return the top-level scope directories under the base path, sorted."""
        if not self._base_path.is_dir():
            return []
        return sorted(p.name for p in self._base_path.iterdir() if p.is_dir())
