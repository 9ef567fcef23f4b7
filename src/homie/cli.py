"""
CLI entry point for homie.

This module provides the Typer-based command-line interface for homie.

Commands:
    start     Start the clipboard daemon in the background
    stop      Stop the clipboard daemon
    run       Daemon body (hidden; launched by start)
    history   Browse the clipboard history and copy/paste a pick
    clear     Delete the whole clipboard history
    shell     Print the shell integration script
    tmux      Print the tmux integration script

Architecture Note:
    Commands resolve settings and the database path once, through
    AppContext, then hand them to the modules that do the work.
"""

import os
import traceback
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from homie import __version__
from homie.config import AppContext
from homie.daemon import PsProcessLister, run_daemon, spawn_daemon, stop_all_instances
from homie.errors import HomieError
from homie.finder import list_history
from homie.integrations import SHELL_CONFIG, SHELL_HELP, TMUX_CONFIG, TMUX_HELP
from homie.log import configure_logging
from homie.schema import DEFAULT_LIMIT
from homie.selector import PromptSelector
from homie.sink import paste_to_tmux_pane, write_to_clipboard
from homie.store import HistoryDB

TARGET_PANE_ENV = "HOMIE_TARGET_PANE"

app = typer.Typer(
    name="homie",
    help="Clipboard history manager.",
    add_completion=False,
    no_args_is_help=True,
)

# Selected text goes to stdout; everything else goes to stderr
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]homie[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    homie - keep a searchable history of everything you copy.
    """
    configure_logging(verbose)


def _fail(message: str, error: Exception | None = None, debug: bool = False) -> None:
    """Print an error to stderr and exit with code 1."""
    err_console.print(f"[red]{escape(message)}[/red]")
    if debug and error is not None:
        err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _load_context() -> AppContext:
    try:
        return AppContext.load()
    except HomieError as e:
        _fail(f"Error: {e}")


@app.command()
def start() -> None:
    """
    Start clipboard manager.

    Stops any running daemon, then launches a new one detached from the
    terminal.
    """
    try:
        stop_all_instances(PsProcessLister())
    except HomieError as e:
        err_console.print(f"[yellow]{escape(e.message)}[/yellow]")

    try:
        spawn_daemon()
    except OSError as e:
        _fail(f"Failed to start daemon process: {e}", e)


@app.command()
def stop() -> None:
    """Stop clipboard manager."""
    try:
        stop_all_instances(PsProcessLister())
    except HomieError as e:
        _fail(f"Error: {e}", e)


@app.command(hidden=True)
def run(
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Print full error tracebacks.",
        ),
    ] = False,
) -> None:
    """Run the clipboard daemon in the foreground."""
    context = _load_context()
    try:
        run_daemon(context)
    except HomieError as e:
        _fail(f"Error: {e}", e, debug)


@app.command()
def history(
    limit: Annotated[
        Optional[int],
        typer.Option(
            "--limit",
            "-l",
            help=f"Number of history items loaded per page [default: config or {DEFAULT_LIMIT}].",
        ),
    ] = None,
    paste: Annotated[
        bool,
        typer.Option(
            "--paste",
            "-p",
            help="Paste the selected item (stdout, or $HOMIE_TARGET_PANE in tmux).",
        ),
    ] = False,
) -> None:
    """
    List clipboard history.

    Filter by typing, pick entries with :N (several with :N M ...). The pick
    is copied to the clipboard; with --paste it is also printed, or pasted
    into the tmux pane named by $HOMIE_TARGET_PANE.
    """
    context = _load_context()
    page_size = limit if limit is not None and limit > 0 else context.settings.effective_limit()

    try:
        with HistoryDB(context.db_path) as db:
            output = list_history(db, PromptSelector(console=err_console), page_size)
    except HomieError as e:
        _fail(f"Error: {e}", e)

    if not output:
        return

    try:
        write_to_clipboard(output, use_xclip=context.settings.use_xclip)
        if not paste:
            return

        target_pane = os.environ.get(TARGET_PANE_ENV, "")
        if target_pane:
            paste_to_tmux_pane(output, target_pane)
            return
    except HomieError as e:
        _fail(f"Error: {e}", e)

    typer.echo(output, nl=False)


@app.command()
def clear() -> None:
    """Clear clipboard history."""
    context = _load_context()
    try:
        with HistoryDB(context.db_path) as db:
            deleted = db.reset()
    except HomieError as e:
        _fail(f"Error: {e}", e)
    err_console.print(f"[dim]Removed {deleted} entries[/dim]")


@app.command(help=f"Generate a shell integration script.\n\n{SHELL_HELP}")
def shell() -> None:
    typer.echo(SHELL_CONFIG, nl=False)


@app.command(help=f"Generate a tmux integration script.\n\n{TMUX_HELP}")
def tmux() -> None:
    typer.echo(TMUX_CONFIG, nl=False)


if __name__ == "__main__":
    app()
