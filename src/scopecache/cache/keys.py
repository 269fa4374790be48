"""Scope normalisation, key canonicalisation and fingerprinting.

A cache entry lives at ``<base>/<scope>/<fingerprint>.cache``. This module
owns the two pure mappings behind that layout:

* :func:`normalize_scope` turns a caller-supplied scope name into a relative
  directory path, trimming surrounding whitespace and path separators.
* :func:`canonicalize_key` turns a structured key into a deterministic JSON
  string (sorted fields, compact separators), and :func:`fingerprint` digests
  it into a fixed-width hex name.

The digest is MD5 used purely as a 128-bit address, never for secrecy.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from pydantic import BaseModel

from scopecache.exceptions import ConfigurationError, InvalidKeyError

CACHE_SUFFIX = ".cache"
"""File suffix shared by every stored entry."""

FINGERPRINT_LENGTH = 32

_SCOPE_TRIM_CHARS = " \t\n\r\0\x0b\\/"
_SEPARATORS = re.compile(r"[\\/]+")


def normalize_scope(name: Any) -> str:
    """Validate a scope name and return it as a ``/``-joined relative path.

    Leading and trailing whitespace, NUL, vertical tab, ``/`` and ``\\`` are
    stripped. Inner separators are kept, so ``"api/users"`` maps to a nested
    directory.

    Raises:
        ConfigurationError: If *name* is not a string, is empty after
            trimming, or contains ``.``/``..`` segments.
    """
    if not isinstance(name, str):
        raise ConfigurationError(f"The given scope is invalid: {name!r}")
    trimmed = name.strip(_SCOPE_TRIM_CHARS)
    if not trimmed:
        raise ConfigurationError(f"The given scope is invalid: {name!r}")
    parts = _SEPARATORS.split(trimmed)
    if any(part in (".", "..") for part in parts):
        raise ConfigurationError(
            f"The given scope may not contain relative segments: {name!r}"
        )
    return "/".join(parts)


def canonicalize_key(key: Any) -> str:
    """Serialise *key* to a deterministic JSON string.

    Mappings are emitted with sorted field names, so two dicts with the same
    items in different insertion order produce the same canonical form.
    Pydantic models are dumped in JSON mode first.

    Raises:
        InvalidKeyError: If *key* contains values JSON cannot represent
            (sets, arbitrary objects, NaN/Infinity, mixed-type dict keys).
    """
    if isinstance(key, BaseModel):
        key = key.model_dump(mode="json")
    try:
        return json.dumps(
            key,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise InvalidKeyError(f"The given key is invalid: {exc}") from exc


def fingerprint(canonical_key: str) -> str:
    """Return the 32-character hex digest addressing *canonical_key*."""
    return hashlib.md5(
        canonical_key.encode("utf-8"), usedforsecurity=False
    ).hexdigest()


def entry_filename(canonical_key: str) -> str:
    """Return the file name (``<fingerprint>.cache``) for *canonical_key*."""
    return fingerprint(canonical_key) + CACHE_SUFFIX
