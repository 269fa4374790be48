"""Cache-aside access to an expensive producer.

:class:`CacheAside` binds a store, a fixed scope and key, a TTL and a
zero-argument producer. Each :meth:`~CacheAside.get` checks the entry's
modification time: if the entry is absent or at least ``ttl_seconds`` old the
producer runs and its result overwrites the entry, otherwise the cached bytes
are returned and the producer is not called.

The freshness check and the write are not atomic. Two callers that both see a
stale entry will both call the producer and both write; the later write wins.
Producers are expected to be idempotent enough for that to be harmless.

The TTL here governs when a value is *used*; it is unrelated to the age
threshold the :class:`~scopecache.cache.sweeper.Sweeper` evicts at.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from scopecache.cache.store import FileCache
from scopecache.exceptions import DeserializationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Freshness(str, enum.Enum):
    """Whether the cached value may be used. ``STALE`` also covers an absent entry."""

    FRESH = "fresh"
    STALE = "stale"


class CacheAside:
    """Serve a value from the cache, recomputing it only when stale.

    Args:
        store: The store to read and write through. It may be shared with
            other clients; the scope and key are re-selected on every call.
        scope: Scope the value lives in.
        key: Structured key of the value within the scope.
        ttl_seconds: Age at which the cached value stops being used.
        producer: Zero-argument callable returning fresh ``bytes``. Any
            exception it raises propagates unchanged.
        clock: Returns the current epoch time; injectable for tests.

    Raises:
        ValueError: If *ttl_seconds* is not positive.
        ConfigurationError: If *scope* is invalid.
        InvalidKeyError: If *key* cannot be canonicalised.
    """

    def __init__(
        self,
        store: FileCache,
        scope: str,
        key: Any,
        ttl_seconds: float,
        producer: Callable[[], bytes],
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._store = store
        self._scope = scope
        self._key = key
        self._ttl = ttl_seconds
        self._producer = producer
        self._clock = clock
        self._bind()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def store(self) -> FileCache:
        return self._store

    def _bind(self) -> FileCache:
        return self._store.set_scope(self._scope).set_key(self._key)

    def _classify(self, mtime: Optional[float]) -> Freshness:
        if mtime is None:
            return Freshness.STALE
        age = self._clock() - mtime
        # Exactly ttl_seconds old counts as stale.
        return Freshness.FRESH if age < self._ttl else Freshness.STALE

    def freshness(self) -> Freshness:
        """Report the current state without reading the payload or calling the producer."""
        return self._classify(self._bind().get_mod_time())

    def get(self) -> bytes:
        """Return the cached value if fresh, otherwise produce, store and return a new one.

        Raises:
            DeserializationError: If a fresh entry exists but is corrupt.
            StorageWriteError: If the produced value cannot be stored.
        """
        store = self._bind()
        mtime = store.get_mod_time()
        state = self._classify(mtime)
        if state is Freshness.FRESH:
            payload = store.load()
            if payload is not None:
                logger.debug("Loading %s from cache (mtime %s)", store.scope, mtime)
                return payload
            # Swept between the mtime check and the read.
            logger.debug("Entry in %s vanished before it could be read", store.scope)
        return self._produce(store)

    def refresh(self) -> bytes:
        """Call the producer unconditionally and overwrite the cached value."""
        return self._produce(self._bind())

    def invalidate(self) -> bool:
        """Delete the cached value so the next :meth:`get` recomputes it."""
        return self._bind().delete()

    def _produce(self, store: FileCache) -> bytes:
        logger.debug("Fetching a fresh value for %s", store.scope)
        value = self._producer()
        store.save(value)
        return bytes(value)


class TypedCacheAside(Generic[T]):
    """A :class:`CacheAside` over typed values, encoded as JSON with pydantic.

    *type_* is anything :class:`pydantic.TypeAdapter` accepts (``str``,
    ``dict[str, int]``, a ``BaseModel`` subclass, ...).

    Example::

        tokens = TypedCacheAside(store, "token", {"kind": "credential"}, 3600,
                                 fetch_token, str)
        token: str = tokens.get()
    """

    def __init__(
        self,
        store: FileCache,
        scope: str,
        key: Any,
        ttl_seconds: float,
        producer: Callable[[], T],
        type_: Any,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)
        self._inner = CacheAside(
            store,
            scope,
            key,
            ttl_seconds,
            lambda: self._adapter.dump_json(producer()),
            clock=clock,
        )

    def freshness(self) -> Freshness:
        return self._inner.freshness()

    def get(self) -> T:
        return self._decode(self._inner.get())

    def refresh(self) -> T:
        return self._decode(self._inner.refresh())

    def invalidate(self) -> bool:
        return self._inner.invalidate()

    def _decode(self, raw: bytes) -> T:
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            raise DeserializationError(
                f"Cached value does not match the expected type: {exc}"
            ) from exc
