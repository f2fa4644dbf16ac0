"""
devledger CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from devledger import __version__
from devledger.cli import catchup, entries, log, notes, pending, status
from devledger.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_RECORD = "Record Work"
PANEL_READ = "Read the Ledger"
PANEL_SYNC = "Share the Ledger"

app = typer.Typer(
    name="devledger",
    help="Development ledger: what/why/how records anchored to git commits",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    devledger - record what changed, why, and how, next to the commits.

    Quick Start:
        devledger pending                                  # What is undocumented?
        devledger log "Fix auth" --why "..." --how "..."   # Document it
        devledger query --last 5                           # Review recent work
        devledger status                                   # Repository and storage state

    Backfilling history:
        devledger log --batch --dry-run      # Entries from commit messages
        devledger catchup --parallel 3       # Entries written by an LLM
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    _configure_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="pending", rich_help_panel=PANEL_RECORD)(pending.pending)
app.command(name="log", rich_help_panel=PANEL_RECORD)(log.log)
app.command(name="catchup", rich_help_panel=PANEL_RECORD)(catchup.catchup)
app.command(name="amend", rich_help_panel=PANEL_RECORD)(entries.amend)

app.command(name="show", rich_help_panel=PANEL_READ)(entries.show)
app.command(name="query", rich_help_panel=PANEL_READ)(entries.query)
app.command(name="status", rich_help_panel=PANEL_READ)(status.status)

app.add_typer(notes.app, name="notes", rich_help_panel=PANEL_SYNC)


@app.command()
def version() -> None:
    """Show devledger version and exit."""
    console.print(f"devledger version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
