"""Canonical Pydantic models shared across all scopecache modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`TokenConfig`, :class:`OutputConfig`, and
    :class:`GlobalConfig`.

**Storage models** -- written to and read from cache files or reported by the
sweeper:
    :class:`CacheRecord`, :class:`PurgeReport`, and :class:`ScopeStats`.

All models use Pydantic v2.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Cache Config ---


class CacheConfig(BaseModel):
    """Settings for a :class:`~scopecache.cache.store.FileCache` and its sweeper.

    ``path`` is the base directory under which every scope gets its own
    sub-directory. It must already exist and be writable when a store is
    constructed. When left as ``None`` the CLI resolves it to the XDG cache
    directory (see :func:`~scopecache.config.resolve_cache_path`).

    Example::

        CacheConfig(path=Path("/var/cache/myapp"), enable_purge=True)
    """

    path: Optional[Path] = Field(
        default=None, description="Base directory holding one sub-directory per scope"
    )
    enable_purge: bool = Field(
        default=True, description="When false, purge() never deletes anything"
    )
    purge_max_age_seconds: int = Field(
        default=86400,
        ge=0,
        description="Default age threshold used by 'scopecache cache purge'",
    )


class TokenConfig(BaseModel):
    """OAuth2 client-credentials settings for the cached token provider.

    ``client_id_source`` and ``client_secret_source`` use the same descriptor
    syntax as :func:`~scopecache.config.resolve_credential` (``env:VAR``,
    ``file:/path``, ``prompt``).
    """

    token_url: Optional[str] = Field(default=None, description="Token endpoint URL")
    client_id_source: Optional[str] = Field(
        default=None, description="Credential source for the client id"
    )
    client_secret_source: Optional[str] = Field(
        default=None, description="Credential source for the client secret"
    )
    scopes: list[str] = Field(default_factory=list)
    ttl_seconds: int = Field(
        default=3600, gt=0, description="How long a fetched token is reused"
    )
    cache_scope: str = Field(
        default="token", description="Cache scope the token is stored under"
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/scopecache/config.json``.

    Loaded and saved by :func:`~scopecache.config.load_global_config` and
    :func:`~scopecache.config.save_global_config`. Environment variables and
    CLI flags take precedence; see :func:`~scopecache.config.resolve_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    token: TokenConfig = Field(default_factory=TokenConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Storage ---


class CacheRecord(BaseModel):
    """The JSON document stored in each ``<fingerprint>.cache`` file.

    ``key`` holds the canonical key the fingerprint was derived from so a
    reader can tell a genuine hit from a digest collision. ``payload`` is the
    caller's opaque bytes. It holds raw bytes in Python and is base64 only in
    the JSON form; read records with :meth:`model_validate_json` so a payload
    that is not strictly valid base64 fails validation.
    """

    model_config = ConfigDict(
        extra="forbid", ser_json_bytes="base64", val_json_bytes="base64"
    )

    version: Literal[1] = 1
    key: str
    payload: bytes


class PurgeReport(BaseModel):
    """Outcome of a single :meth:`~scopecache.cache.sweeper.Sweeper.purge` pass."""

    scope: str
    enabled: bool = True
    scanned: int = 0
    removed: int = 0
    skipped: int = 0
    errors: int = 0
    removed_dirs: int = 0


class ScopeStats(BaseModel):
    """Summary of the entries currently stored in one scope."""

    scope: str
    directory: str
    entries: int = 0
    total_bytes: int = 0
    oldest_mtime: Optional[float] = None
    newest_mtime: Optional[float] = None
