"""Typer application and CLI entry point for repofetch.

This module builds the root Typer application and registers the built-in
commands (``get``, ``import`` and the ``config`` group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  Unhandled :class:`~repofetch.exceptions.RepofetchError`
instances exit with their own exit code; anything else is reported with
:func:`~repofetch.exceptions.get_error_message` and a generic failure code.

See Also:
    :mod:`repofetch.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import typer

from repofetch import __version__
from repofetch.commands.config import config_app
from repofetch.commands.fetch import get_command, import_command
from repofetch.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="repofetch",
    help="Fetch JSON through a TTL/LRU response cache and import preset files from repositories.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"repofetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~repofetch.output.OutputManager` built from
    the CLI flags.  ``--verbose`` also turns on ``DEBUG`` logging for the
    library modules (cache evictions, provider decisions).
    """
    from repofetch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )


app.command("get")(get_command)
app.command("import")(import_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``repofetch`` console script.

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
        from repofetch.exceptions import RepofetchError, get_error_message
        from repofetch.output import error

        if isinstance(exc, RepofetchError):
            error(exc.message)
            sys.exit(exc.exit_code)
        error(get_error_message(exc))
        sys.exit(EXIT_GENERIC_FAILURE)
