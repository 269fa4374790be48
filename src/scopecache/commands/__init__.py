"""Built-in CLI sub-commands for scopecache.

* :mod:`~scopecache.commands.cache` -- put, get, stat, delete, purge and
  summarise cache entries.
* :mod:`~scopecache.commands.config` -- view and modify global settings.
* :mod:`~scopecache.commands.token` -- print a cached-or-fresh access token.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered directly on the root app.
"""
