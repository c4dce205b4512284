"""Typer application and CLI entry point for platformclient.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``auth``, ``config``, ``request``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`platformclient.config`: Configuration resolution.
    :mod:`platformclient.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from platformclient import __version__
from platformclient.commands.auth import auth_app
from platformclient.commands.config import config_app
from platformclient.commands.request import request_command
from platformclient.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="platformclient",
    help="Authenticate against the platform API and send requests.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Log in, log out and inspect tokens.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.command("request")(request_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"platformclient {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route package log records to stderr when running verbosely."""
    logger = logging.getLogger("platformclient")
    if not verbose or logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


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
    session_id: str = typer.Option(
        "default", "--session", "-s", help="Session name to use."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Trace every HTTP request and response."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~platformclient.output.OutputManager`
    and stores shared options in ``ctx.obj`` for the sub-commands.
    """
    from platformclient.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["session_id"] = session_id
    ctx.obj["debug"] = debug
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from platformclient.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point invoked by the ``platformclient`` console script.

    Expected failures are reported by the commands themselves and exit with
    a code from :mod:`platformclient.exit_codes`.  Any other
    :class:`~platformclient.exceptions.PlatformClientError` exits with its
    ``exit_code``; all remaining exceptions produce a crash log.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app(args=argv)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from platformclient.exceptions import PlatformClientError
        from platformclient.output import error

        if isinstance(exc, PlatformClientError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
