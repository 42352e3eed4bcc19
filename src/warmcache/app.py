"""Typer application and CLI entry point for warmcache.

The CLI is a diagnostic companion to the cache library: it inspects and
purges the durable mirror, shows the effective TTL policy table, and
manages the global configuration.  In-memory cache state lives inside the
application process and is not visible here.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from warmcache import __version__
from warmcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="warmcache",
    help="Inspect and manage the warmcache durable mirror and configuration.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from warmcache.commands.config import config_app  # noqa: E402
from warmcache.commands.durable import durable_app  # noqa: E402
from warmcache.commands.policy import policy_command  # noqa: E402

app.add_typer(durable_app, name="durable", help="Inspect and purge durable records.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.command("policy")(policy_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"warmcache {__version__}")
        raise typer.Exit()


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
        False, "--verbose", "-v", help="Enable debug output and cache logging."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", help="Override the maximum number of cache entries."
    ),
    default_ttl: Optional[float] = typer.Option(
        None, "--default-ttl", help="Override the global default TTL in seconds."
    ),
    durable_dir: Optional[str] = typer.Option(
        None, "--durable-dir", help="Override the durable store directory."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~warmcache.output.OutputManager` from
    CLI flags, attaches the cache logger in verbose mode, and stores
    shared options (``force`` and the cache config overrides) in the
    Typer context for sub-commands.
    """
    from warmcache.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose
    ctx.obj["max_size"] = max_size
    ctx.obj["default_ttl"] = default_ttl
    ctx.obj["durable_dir"] = durable_dir


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from warmcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``warmcache`` console script.

    :class:`~warmcache.exceptions.WarmcacheError` instances cause a clean
    exit with the error's ``exit_code``.  All other exceptions produce a
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
        from warmcache.exceptions import WarmcacheError
        from warmcache.output import error

        if isinstance(exc, WarmcacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
