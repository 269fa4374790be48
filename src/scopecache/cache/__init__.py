"""Scoped file cache: store, sweeper and cache-aside client.

This package provides:

* :class:`FileCache` -- persists opaque byte payloads at
  ``<path>/<scope>/<fingerprint>.cache`` and reports their modification time.
* :class:`Sweeper` -- removes entries older than a threshold from a scope.
* :class:`CacheAside` / :class:`TypedCacheAside` -- call an expensive
  producer only when the cached value is absent or older than a TTL.
"""

from scopecache.cache.aside import CacheAside, Freshness, TypedCacheAside
from scopecache.cache.keys import canonicalize_key, fingerprint, normalize_scope
from scopecache.cache.store import FileCache, LookupResult, LookupStatus
from scopecache.cache.sweeper import Sweeper

__all__ = [
    "CacheAside",
    "FileCache",
    "Freshness",
    "LookupResult",
    "LookupStatus",
    "Sweeper",
    "TypedCacheAside",
    "canonicalize_key",
    "fingerprint",
    "normalize_scope",
]
