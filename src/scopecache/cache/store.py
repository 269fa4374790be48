"""File-backed, scope-partitioned store for opaque byte payloads.

Each entry is a small JSON document (:class:`~scopecache.models.CacheRecord`)
at ``<base>/<scope>/<fingerprint>.cache``. The file's modification time is the
only freshness signal; nothing else about expiry is stored. Writes go to a
temporary file in the scope directory and are renamed into place, so readers
see either the previous record or the new one, never a partial write.

There is no locking. Two writers racing on the same key leave whichever
rename landed last, and a concurrent :class:`~scopecache.cache.sweeper.Sweeper`
may remove an entry moments after it was written.

See Also:
    :mod:`scopecache.cache.keys` -- scope and key to file name mapping.
    :class:`~scopecache.cache.aside.CacheAside` -- the freshness-checking client.
"""

from __future__ import annotations

import enum
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from scopecache.cache.keys import canonicalize_key, entry_filename, normalize_scope
from scopecache.exceptions import (
    ConfigurationError,
    DeserializationError,
    NotConfiguredError,
    StorageWriteError,
)
from scopecache.models import CacheConfig, CacheRecord, PurgeReport

logger = logging.getLogger(__name__)


class LookupStatus(str, enum.Enum):
    """Outcome of :meth:`FileCache.lookup`."""

    HIT = "hit"
    ABSENT = "absent"
    CORRUPT = "corrupt"


@dataclass
class LookupResult:
    """Explicit result of reading an entry, without control-flow exceptions.

    Attributes:
        status: Whether the entry was found, missing, or unreadable.
        payload: The stored bytes on a ``HIT``, otherwise ``None``.
        mtime: The entry's modification time when it exists on disk.
        error: The :class:`DeserializationError` describing a ``CORRUPT``
            entry, otherwise ``None``.
    """

    status: LookupStatus
    payload: Optional[bytes] = None
    mtime: Optional[float] = None
    error: Optional[DeserializationError] = None

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT


class FileCache:
    """Persist opaque payloads addressed by an active (scope, key) pair.

    The store is stateful in the same way a cursor is: call :meth:`set_scope`
    and :meth:`set_key` first, then :meth:`save`, :meth:`load` or
    :meth:`get_mod_time` act on that entry. Both setters return ``self`` so
    calls can be chained.

    Args:
        config: Cache configuration. ``config.path`` must name an existing,
            writable directory.

    Raises:
        ConfigurationError: If the base path is unset, missing, not a
            directory, or not writable.

    Example::

        store = FileCache(CacheConfig(path=Path("/var/cache/myapp")))
        store.set_scope("token").set_key({"kind": "credential"})
        store.save(b"abc")
        assert store.load() == b"abc"
    """

    def __init__(self, config: CacheConfig) -> None:
        if config.path is None:
            raise ConfigurationError("No cache path configured")
        base = Path(config.path)
        if not base.is_dir():
            raise ConfigurationError(
                f"The cache path does not exist: {base}. "
                f"Create it first, e.g. mkdir -p {base}"
            )
        if not os.access(base, os.W_OK | os.X_OK):
            raise ConfigurationError(f"The cache path is not writable: {base}")

        self._config = config
        self._base_path = base
        self._scope: Optional[str] = None
        self._scope_path: Optional[Path] = None
        self._key: Optional[str] = None

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def scope(self) -> Optional[str]:
        """The normalised active scope, or ``None`` before :meth:`set_scope`."""
        return self._scope

    @property
    def scope_path(self) -> Path:
        """Directory of the active scope.

        Raises:
            NotConfiguredError: If no scope has been set.
        """
        if self._scope_path is None:
            raise NotConfiguredError('Call "set_scope" first!')
        return self._scope_path

    @property
    def key(self) -> Optional[str]:
        """The canonical form of the active key, or ``None`` before :meth:`set_key`."""
        return self._key

    # ------------------------------------------------------------------ #
    # Addressing
    # ------------------------------------------------------------------ #

    def set_scope(self, name: str) -> FileCache:
        """Select the scope for subsequent operations, creating its directory.

        Raises:
            ConfigurationError: If *name* is invalid or the directory cannot
                be created.
        """
        scope = normalize_scope(name)
        path = self._base_path / scope
        try:
            path.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Unable to create cache directory {path}: {exc}"
            ) from exc
        self._scope = scope
        self._scope_path = path
        return self

    def set_key(self, key: Any) -> FileCache:
        """Select the key for subsequent operations.

        Raises:
            InvalidKeyError: If *key* cannot be canonicalised.
        """
        self._key = canonicalize_key(key)
        return self

    def path_for_key(self) -> Path:
        """Return the file path of the active entry (which may not exist)."""
        scope_path = self.scope_path
        if self._key is None:
            raise NotConfiguredError('Call "set_key" first!')
        return scope_path / entry_filename(self._key)

    # ------------------------------------------------------------------ #
    # Entry operations
    # ------------------------------------------------------------------ #

    def save(self, payload: bytes) -> FileCache:
        """Create or overwrite the active entry with *payload*.

        The entry's modification time becomes the time of this write.

        Raises:
            TypeError: If *payload* is not bytes-like.
            NotConfiguredError: If scope or key is unset.
            StorageWriteError: If the file cannot be written.
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"Cache payloads must be bytes, got {type(payload).__name__}"
            )
        path = self.path_for_key()
        assert self._key is not None
        record = CacheRecord(key=self._key, payload=bytes(payload))
        data = record.model_dump_json().encode("utf-8")

        try:
            # The scope directory may have been removed externally.
            path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
            _atomic_write_bytes(path, data)
        except OSError as exc:
            logger.error("Error writing cache entry %s: %s", path, exc)
            raise StorageWriteError(f"Unable to write cache entry {path}: {exc}") from exc

        logger.debug("Saved %d bytes to %s", len(payload), path)
        return self

    def lookup(self) -> LookupResult:
        """Read the active entry and report the outcome as a :class:`LookupResult`.

        A record whose stored key differs from the active key (a fingerprint
        collision) is reported as ``ABSENT``.
        """
        path = self.path_for_key()
        try:
            with open(path, "rb") as fh:
                raw = fh.read()
                mtime = os.fstat(fh.fileno()).st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return LookupResult(status=LookupStatus.ABSENT)
        except OSError as exc:
            return LookupResult(
                status=LookupStatus.CORRUPT,
                error=DeserializationError(f"Unable to read cache entry {path}: {exc}"),
            )

        try:
            record = CacheRecord.model_validate_json(raw)
        except ValidationError as exc:
            return LookupResult(
                status=LookupStatus.CORRUPT,
                mtime=mtime,
                error=DeserializationError(f"Corrupt cache entry {path}: {exc}"),
            )

        if record.key != self._key:
            logger.warning(
                "Cache entry %s belongs to a different key; treating as absent", path
            )
            return LookupResult(status=LookupStatus.ABSENT)

        return LookupResult(status=LookupStatus.HIT, payload=record.payload, mtime=mtime)

    def load(self) -> Optional[bytes]:
        """Return the active entry's payload, or ``None`` if it was never written.

        Raises:
            NotConfiguredError: If scope or key is unset.
            DeserializationError: If the entry exists but cannot be decoded.
        """
        result = self.lookup()
        if result.status is LookupStatus.CORRUPT:
            assert result.error is not None
            raise result.error
        return result.payload

    def get_mod_time(self) -> Optional[float]:
        """Return the active entry's modification time, or ``None`` if absent.

        Never creates the entry.
        """
        path = self.path_for_key()
        try:
            return path.stat().st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return None

    def delete(self) -> bool:
        """Remove the active entry. Returns ``False`` if it did not exist."""
        path = self.path_for_key()
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Deleted %s", path)
        return True

    def purge(self, max_age_seconds: float, now: Optional[float] = None) -> PurgeReport:
        """Sweep the active scope, removing entries older than *max_age_seconds*.

        Delegates to :meth:`~scopecache.cache.sweeper.Sweeper.purge`.
        """
        from scopecache.cache.sweeper import Sweeper

        if self._scope is None:
            raise NotConfiguredError('Call "set_scope" first!')
        return Sweeper(self._config).purge(self._scope, max_age_seconds, now=now)

    def __repr__(self) -> str:
        return f"FileCache(path={self._base_path}, scope={self._scope!r})"


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* via a temp file in the same directory and ``os.replace``."""
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
