"""Config commands -- view and modify global configuration.

Provides the ``scopecache config`` sub-command group for reading, updating
and resetting the user's global configuration file
(:class:`~scopecache.models.GlobalConfig`): the cache base path, purge
settings, token endpoint settings and output defaults.
"""

from __future__ import annotations

from typing import Any

import typer

from scopecache.exit_codes import EXIT_INVALID_USAGE
from scopecache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str) -> Any:
    """Convert *value* to the type of the field's current value.

    Raises:
        ValueError: If a numeric field receives a non-numeric string.
    """
    if value.lower() in ("null", "none"):
        return None
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@config_app.command("show")
def config_show() -> None:
    """Show the configuration stored on disk.

    Example::

        scopecache config show
        scopecache --json config show
    """
    from scopecache.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'cache.enable_purge')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type (bool, int, float,
    comma-separated list, or string) and the result is validated against
    :class:`~scopecache.models.GlobalConfig` before saving.

    Example::

        scopecache config set cache.path /var/cache/myapp
        scopecache config set cache.enable_purge false
        scopecache config set token.ttl_seconds 1800
        scopecache config set token.scopes read,write
    """
    from scopecache.config import load_global_config, save_global_config
    from scopecache.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected a number for {key}, got: {value}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults. Asks for confirmation unless ``--force`` is given."""
    from scopecache.config import save_global_config
    from scopecache.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
