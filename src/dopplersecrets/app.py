"""Typer application and CLI entry point for doppler-secrets.

This module wires together the top-level Typer application and registers
the built-in commands (``get``, ``download``, ``push``, ``delete``,
``validate`` and the ``store`` group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler and invokes the Typer
app.  A :class:`~dopplersecrets.exceptions.DopplerSecretsError` escaping a
command exits with the error's ``exit_code``.

See Also:
    :mod:`dopplersecrets.config`: Store resolution.
    :mod:`dopplersecrets.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import typer

from dopplersecrets import __version__
from dopplersecrets.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="doppler-secrets",
    help="Read and push Doppler secrets with ETag-revalidated caching.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from dopplersecrets.commands.secrets import (  # noqa: E402
    delete_command,
    download_command,
    get_command,
    push_command,
    validate_command,
)
from dopplersecrets.commands.store import store_app  # noqa: E402

app.command("get")(get_command)
app.command("download")(download_command)
app.command("push")(push_command)
app.command("delete")(delete_command)
app.command("validate")(validate_command)
app.add_typer(store_app, name="store", help="Store profile management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"doppler-secrets {__version__}")
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
    store: Optional[str] = typer.Option(
        None, "--store", "-S", help="Store profile name or path to a store file."
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
        False, "--verbose", "-v", help="Enable debug output (requests, cache decisions)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~dopplersecrets.output.OutputManager` and
    stores the selected store name in ``ctx.obj`` for the sub-commands.
    """
    from dopplersecrets.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["store"] = store


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``doppler-secrets`` console script.

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
        from dopplersecrets.exceptions import DopplerSecretsError
        from dopplersecrets.output import error

        if isinstance(exc, DopplerSecretsError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
