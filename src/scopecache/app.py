"""Typer application and CLI entry point for scopecache.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers the built-in
sub-commands and invokes the Typer app. Unhandled exceptions are written to
a crash log under the data directory.

See Also:
    :mod:`scopecache.config`: Configuration resolution.
    :mod:`scopecache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from scopecache import __version__
from scopecache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="scopecache",
    help="Scoped file cache with mtime freshness and age-based purging.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"scopecache {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """With --verbose, send library DEBUG records to stderr."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    path: Optional[str] = typer.Option(
        None, "--path", help="Cache base directory (overrides SCOPECACHE_PATH and config)."
    ),
    no_purge: bool = typer.Option(
        False, "--no-purge", help="Disable purging for this invocation."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~scopecache.output.OutputManager` and
    logging from CLI flags, and stores shared options in ``ctx.obj`` for
    sub-commands.
    """
    from scopecache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["path"] = path
    ctx.obj["enable_purge"] = False if no_purge else None
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from scopecache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


_commands_registered = False


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app` (once)."""
    global _commands_registered
    if _commands_registered:
        return
    _commands_registered = True

    from scopecache.commands.cache import cache_app
    from scopecache.commands.config import config_app
    from scopecache.commands.token import token_command

    app.add_typer(cache_app, name="cache", help="Inspect and manage cache entries.")
    app.add_typer(config_app, name="config", help="Configuration management.")
    app.command("token")(token_command)


def main() -> None:
    """CLI entry point invoked by the ``scopecache`` console script.

    :class:`~scopecache.exceptions.ScopecacheError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from scopecache.exceptions import ScopecacheError
        from scopecache.output import error

        if isinstance(exc, ScopecacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
