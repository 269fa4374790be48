"""Token command -- print an OAuth2 access token, reusing the cached one while fresh.

The token endpoint and client credential sources come from the ``token``
section of the global config::

    scopecache config set token.token_url https://accounts.example.com/api/token
    scopecache config set token.client_id_source env:CLIENT_ID
    scopecache config set token.client_secret_source env:CLIENT_SECRET
    scopecache token
"""

from __future__ import annotations

import typer

from scopecache.exceptions import ScopecacheError
from scopecache.output import debug, error, print_data


def token_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False, "--refresh", help="Fetch a new token even if the cached one is fresh."
    ),
) -> None:
    """Print an access token, fetching a new one only when the cached token is stale."""
    from scopecache.auth import TokenProvider
    from scopecache.cache import FileCache
    from scopecache.config import resolve_cache_path, resolve_config

    obj = ctx.obj or {}
    try:
        config = resolve_config(cli_path=obj.get("path"))
        store = FileCache(resolve_cache_path(config.cache))
        provider = TokenProvider(store, config.token)
        debug(f"Cached token is {provider.freshness().value}")
        token = provider.refresh() if refresh else provider.get_token()
    except ScopecacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_data(token)
