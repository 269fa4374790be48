"""Access tokens reused from the file cache until they go stale.

:class:`TokenProvider` puts a producer (by default
:class:`~scopecache.auth.client_credentials.ClientCredentialsProducer`) behind
a :class:`~scopecache.cache.aside.CacheAside`, so every process sharing the
cache directory reuses one token for ``ttl_seconds`` before any of them asks
the endpoint for another.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from scopecache.auth.client_credentials import ClientCredentialsProducer
from scopecache.cache.aside import CacheAside, Freshness
from scopecache.cache.store import FileCache
from scopecache.models import TokenConfig


def token_cache_key(token_config: TokenConfig) -> dict[str, Any]:
    """Build the structured cache key for tokens issued under *token_config*.

    Tokens for different endpoints or clients never share an entry.
    """
    return {
        "kind": "credential",
        "token_url": token_config.token_url,
        "client_id_source": token_config.client_id_source,
        "scopes": sorted(token_config.scopes),
    }


class TokenProvider:
    """Hand out a cached access token, fetching a new one only when stale.

    Args:
        store: The file cache to keep the token in.
        token_config: Endpoint, credential sources, TTL and cache scope.
        producer: Overrides the default client-credentials producer.
        clock: Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: FileCache,
        token_config: TokenConfig,
        producer: Optional[Callable[[], bytes]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = token_config
        self._aside = CacheAside(
            store,
            token_config.cache_scope,
            token_cache_key(token_config),
            token_config.ttl_seconds,
            producer or ClientCredentialsProducer(token_config),
            clock=clock,
        )

    def get_token(self) -> str:
        """Return the cached token, or fetch and store a new one if it is stale."""
        return self._aside.get().decode("utf-8")

    def refresh(self) -> str:
        """Fetch a new token regardless of the cached one."""
        return self._aside.refresh().decode("utf-8")

    def freshness(self) -> Freshness:
        return self._aside.freshness()

    def invalidate(self) -> bool:
        return self._aside.invalidate()
