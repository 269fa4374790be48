"""scopecache -- Scoped, file-backed cache with mtime freshness and age-based purging.

Values are stored as opaque byte payloads under ``<path>/<scope>/<fingerprint>.cache``
where the fingerprint is a digest of a canonicalised, caller-supplied key.
Freshness is derived from the file's modification time, and a sweeper removes
entries older than a threshold. The cache-aside helper wraps an expensive
producer (for example a token endpoint) so it only runs when the cached value
is missing or stale.

Typical usage::

    from scopecache import CacheAside, CacheConfig, FileCache

    store = FileCache(CacheConfig(path="/var/cache/myapp"))
    token = CacheAside(store, "token", {"kind": "credential"}, 3600, fetch_token)
    value = token.get()

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    cache: The store, sweeper and cache-aside client.
    auth: OAuth2 client-credentials producer and cached token provider.
"""

__version__ = "0.1.0"

from scopecache.cache import (
    CacheAside,
    FileCache,
    Freshness,
    LookupResult,
    LookupStatus,
    Sweeper,
    TypedCacheAside,
)
from scopecache.models import CacheConfig

__all__ = [
    "CacheAside",
    "CacheConfig",
    "FileCache",
    "Freshness",
    "LookupResult",
    "LookupStatus",
    "Sweeper",
    "TypedCacheAside",
    "__version__",
]
