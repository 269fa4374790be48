"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~scopecache.exceptions.ScopecacheError` subclass.
Shell wrappers can inspect the exit code to tell a cache miss from a broken
cache directory without parsing stderr.

Example::

    $ scopecache cache get token '{"kind": "credential"}'
    $ echo $?
    4   # EXIT_NOT_FOUND -- no entry stored under that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments, or the cache was used before a scope and key were set."""

EXIT_CONFIG_ERROR = 3
"""The cache path or scope directory is missing, unwritable, or misconfigured."""

EXIT_NOT_FOUND = 4
"""No entry is stored under the requested scope and key."""

EXIT_STORAGE_ERROR = 5
"""Writing an entry to disk failed (permissions, disk full)."""

EXIT_CORRUPT_ENTRY = 6
"""A stored entry could not be decoded."""

EXIT_PRODUCER_ERROR = 7
"""The upstream producer (e.g. a token endpoint) failed."""
