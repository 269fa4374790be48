"""Cache commands -- inspect and manipulate entries from the shell.

Provides the ``scopecache cache`` sub-command group. Every command takes a
scope and most take a key. Keys are parsed as JSON when possible
(``'{"kind": "credential"}'``, ``'["a", 1]'``); anything that is not valid
JSON is used as a plain string key.

The cache base directory comes from ``--path``, ``SCOPECACHE_PATH``, the
global config, or the XDG cache directory, in that order.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from scopecache.cache import FileCache, Sweeper, fingerprint
from scopecache.config import resolve_cache_path, resolve_config
from scopecache.exceptions import ScopecacheError
from scopecache.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from scopecache.models import CacheConfig, GlobalConfig
from scopecache.output import (
    error,
    format_response,
    info,
    print_bytes,
    print_table,
    success,
    warning,
)


cache_app = typer.Typer(no_args_is_help=True)


def _parse_key(raw: str) -> Any:
    """Parse a command-line key as JSON, falling back to the literal string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _fail(exc: ScopecacheError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def _resolve(ctx: typer.Context) -> GlobalConfig:
    obj = ctx.obj or {}
    return resolve_config(
        cli_path=obj.get("path"), cli_enable_purge=obj.get("enable_purge")
    )


def _open_store(ctx: typer.Context) -> FileCache:
    """Build a :class:`~scopecache.cache.store.FileCache` from the resolved config."""
    config = _resolve(ctx)
    return FileCache(resolve_cache_path(config.cache))


def _open_sweeper(ctx: typer.Context) -> tuple[Sweeper, CacheConfig]:
    config = _resolve(ctx)
    return Sweeper(resolve_cache_path(config.cache)), config.cache


def _format_time(ts: Optional[float]) -> str:
    if ts is None:
        return "-"
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(ts))


@cache_app.command("put")
def cache_put(
    ctx: typer.Context,
    scope: str = typer.Argument(help="Cache scope (namespace)."),
    key: str = typer.Argument(help="Entry key, JSON or a plain string."),
    value: Optional[str] = typer.Option(
        None, "--value", help="Store this text (UTF-8) as the payload."
    ),
    file: Optional[Path] = typer.Option(
        None, "--file", help="Store the contents of this file as the payload."
    ),
) -> None:
    """Store a payload under SCOPE and KEY, overwriting any existing entry.

    Reads the payload from ``--value``, ``--file``, or standard input.

    Example::

        scopecache cache put token '{"kind": "credential"}' --value abc123
        curl -s https://example.com/feed | scopecache cache put feeds example
    """
    if value is not None and file is not None:
        error("Use either --value or --file, not both.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    if value is not None:
        payload = value.encode("utf-8")
    elif file is not None:
        try:
            payload = file.read_bytes()
        except OSError as exc:
            error(f"Cannot read {file}: {exc}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        payload = sys.stdin.buffer.read()

    try:
        store = _open_store(ctx).set_scope(scope).set_key(_parse_key(key))
        store.save(payload)
    except ScopecacheError as exc:
        _fail(exc)

    success(f"Stored {len(payload)} bytes at {store.path_for_key()}")


@cache_app.command("get")
def cache_get(
    ctx: typer.Context,
    scope: str = typer.Argument(help="Cache scope (namespace)."),
    key: str = typer.Argument(help="Entry key, JSON or a plain string."),
) -> None:
    """Write the payload stored under SCOPE and KEY to stdout.

    Exits with code 4 when no entry exists and 6 when the entry is corrupt.
    """
    try:
        store = _open_store(ctx).set_scope(scope).set_key(_parse_key(key))
        payload = store.load()
    except ScopecacheError as exc:
        _fail(exc)

    if payload is None:
        error(f"No entry for key {key} in scope '{store.scope}'")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    print_bytes(payload)


@cache_app.command("stat")
def cache_stat(
    ctx: typer.Context,
    scope: str = typer.Argument(help="Cache scope (namespace)."),
    key: str = typer.Argument(help="Entry key, JSON or a plain string."),
) -> None:
    """Show where an entry lives, whether it exists, and how old it is."""
    try:
        store = _open_store(ctx).set_scope(scope).set_key(_parse_key(key))
        mtime = store.get_mod_time()
    except ScopecacheError as exc:
        _fail(exc)

    path = store.path_for_key()
    assert store.key is not None
    size: Optional[int] = None
    if mtime is not None:
        try:
            size = path.stat().st_size
        except OSError:
            size = None
    format_response(
        {
            "scope": store.scope,
            "key": store.key,
            "fingerprint": fingerprint(store.key),
            "path": str(path),
            "exists": mtime is not None,
            "modified": _format_time(mtime),
            "age_seconds": None if mtime is None else round(time.time() - mtime, 3),
            "size_bytes": size,
        }
    )


@cache_app.command("delete")
def cache_delete(
    ctx: typer.Context,
    scope: str = typer.Argument(help="Cache scope (namespace)."),
    key: str = typer.Argument(help="Entry key, JSON or a plain string."),
) -> None:
    """Remove the entry stored under SCOPE and KEY."""
    try:
        store = _open_store(ctx).set_scope(scope).set_key(_parse_key(key))
        removed = store.delete()
    except ScopecacheError as exc:
        _fail(exc)

    if removed:
        success(f"Deleted entry for key {key} in scope '{store.scope}'")
    else:
        info(f"No entry for key {key} in scope '{store.scope}'")


@cache_app.command("purge")
def cache_purge(
    ctx: typer.Context,
    scope: str = typer.Argument(help="Cache scope (namespace)."),
    max_age: Optional[int] = typer.Option(
        None,
        "--max-age",
        min=0,
        help="Remove entries older than this many seconds "
        "(default: cache.purge_max_age_seconds).",
    ),
) -> None:
    """Remove every entry in SCOPE older than the age threshold.

    Does nothing when ``cache.enable_purge`` is false.

    Example::

        scopecache cache purge feeds --max-age 86400
    """
    try:
        sweeper, cache_config = _open_sweeper(ctx)
        threshold = cache_config.purge_max_age_seconds if max_age is None else max_age
        report = sweeper.purge(scope, threshold)
    except ScopecacheError as exc:
        _fail(exc)

    if not report.enabled:
        warning("Purging is disabled (cache.enable_purge = false); nothing removed.")
    format_response(report.model_dump(mode="json"))


@cache_app.command("stats")
def cache_stats(
    ctx: typer.Context,
    scope: Optional[str] = typer.Argument(
        None, help="Scope to summarise. Omit to list every scope."
    ),
) -> None:
    """Summarise one scope, or list all scopes with their entry counts."""
    try:
        sweeper, _ = _open_sweeper(ctx)
        if scope is not None:
            format_response(sweeper.stats(scope).model_dump(mode="json"))
            return
        all_stats = [sweeper.stats(name) for name in sweeper.list_scopes()]
    except ScopecacheError as exc:
        _fail(exc)

    if not all_stats:
        info("No scopes found.")
        return
    print_table(
        ["scope", "entries", "bytes", "oldest", "newest"],
        [
            [
                s.scope,
                str(s.entries),
                str(s.total_bytes),
                _format_time(s.oldest_mtime),
                _format_time(s.newest_mtime),
            ]
            for s in all_stats
        ],
        title="Cache scopes",
    )
