"""Exception hierarchy for scopecache.

All exceptions inherit from :class:`ScopecacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`scopecache.exit_codes`
and a ``kind`` drawn from :class:`ErrorKind`. The top-level error handler in
:func:`scopecache.app.main` catches ``ScopecacheError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Absence of a cache entry is never an exception; the store reports it as
``None`` (or :attr:`~scopecache.cache.store.LookupStatus.ABSENT`).

Subclass hierarchy::

    ScopecacheError (exit 1)
    +-- NotConfiguredError    (exit 2)
    +-- InvalidKeyError       (exit 2)
    +-- ConfigurationError    (exit 3)
    +-- StorageWriteError     (exit 5)
    +-- DeserializationError  (exit 6)
    +-- ProducerError         (exit 7)
"""

from __future__ import annotations

import enum

from scopecache.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_CORRUPT_ENTRY,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PRODUCER_ERROR,
    EXIT_STORAGE_ERROR,
)


class ErrorKind(str, enum.Enum):
    """Machine-readable category attached to every :class:`ScopecacheError`."""

    GENERIC = "generic"
    CONFIGURATION = "configuration"
    NOT_CONFIGURED = "not_configured"
    INVALID_KEY = "invalid_key"
    STORAGE_WRITE = "storage_write"
    DESERIALIZATION = "deserialization"
    PRODUCER = "producer"


class ScopecacheError(Exception):
    """Base exception for all scopecache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`scopecache.exit_codes`, and a ``kind`` that lets
    callers branch on the failure category without ``isinstance`` chains.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(ScopecacheError):
    """Raised when the cache path is missing or unwritable, a scope name is invalid, or a scope directory cannot be created."""

    exit_code = EXIT_CONFIG_ERROR
    kind = ErrorKind.CONFIGURATION


class NotConfiguredError(ScopecacheError):
    """Raised when a key operation runs before both ``set_scope`` and ``set_key``."""

    exit_code = EXIT_INVALID_USAGE
    kind = ErrorKind.NOT_CONFIGURED


class InvalidKeyError(ScopecacheError):
    """Raised when a cache key cannot be canonicalised to JSON."""

    exit_code = EXIT_INVALID_USAGE
    kind = ErrorKind.INVALID_KEY


class StorageWriteError(ScopecacheError):
    """Raised when an entry cannot be written (permissions, disk full, etc.)."""

    exit_code = EXIT_STORAGE_ERROR
    kind = ErrorKind.STORAGE_WRITE


class DeserializationError(ScopecacheError):
    """Raised when a stored entry exists but its content cannot be decoded."""

    exit_code = EXIT_CORRUPT_ENTRY
    kind = ErrorKind.DESERIALIZATION


class ProducerError(ScopecacheError):
    """Raised by bundled producers when the upstream source fails.

    :class:`~scopecache.cache.aside.CacheAside` never raises this itself; it
    lets whatever the producer raised propagate unchanged.
    """

    exit_code = EXIT_PRODUCER_ERROR
    kind = ErrorKind.PRODUCER
