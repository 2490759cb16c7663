"""Typer application and CLI entry point for fetchcache.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``fetch``, ``paginate``, ``cache``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app,
mapping :class:`~fetchcache.exceptions.FetchCacheError` to its exit code.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`fetchcache.config`: Configuration resolution.
    :mod:`fetchcache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import typer

from fetchcache import __version__
from fetchcache.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from fetchcache.output import OutputFormat


app = typer.Typer(
    name="fetchcache",
    help="Fetch HTTP resources through a local ETag-aware cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _configured_format() -> OutputFormat:
    """Return ``output.format`` from the config file, or ``AUTO`` if it is unreadable."""
    from fetchcache.config import load_global_config
    from fetchcache.exceptions import ConfigError
    from fetchcache.output import OutputFormat

    try:
        return OutputFormat(load_global_config().output.format)
    except ConfigError:
        # `config reset` has to work on a broken file.
        return OutputFormat.AUTO


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"fetchcache {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
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
        False, "--verbose", "-v", help="Show cache decisions on stderr."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", min=0, help="Freshness window in seconds."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory of the disk cache."
    ),
    backend: Optional[str] = typer.Option(
        None, "--backend", help="Cache backend: disk or memory."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Clear the cache before running the command."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~fetchcache.output.OutputManager` from
    CLI flags and stores the shared options in ``ctx.obj``, where
    :func:`~fetchcache.commands.get_fetch_context` picks them up.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        force: Skip interactive confirmations.
        ttl: Freshness window override (highest precedence).
        cache_dir: Cache directory override.
        backend: Cache backend override.
        clear_cache: Remove every cached entry first.
    """
    from fetchcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose
    ctx.obj["ttl"] = ttl
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["backend"] = backend

    if clear_cache:
        from fetchcache.commands import get_fetch_context
        from fetchcache.output import success

        get_fetch_context(ctx).clear_cache()
        success("Cache cleared.")
    elif ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from fetchcache.commands.cache import cache_app  # noqa: E402
from fetchcache.commands.config import config_app  # noqa: E402
from fetchcache.commands.fetch import fetch_command, paginate_command  # noqa: E402

app.command("fetch")(fetch_command)
app.command("paginate")(paginate_command)
app.add_typer(cache_app, name="cache", help="Inspect and clear the response cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from fetchcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``fetchcache`` console script.

    :class:`~fetchcache.exceptions.FetchCacheError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fetchcache.exceptions import FetchCacheError
        from fetchcache.output import error

        if isinstance(exc, FetchCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
