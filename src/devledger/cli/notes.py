"""
devledger CLI - notes sync commands.

Entries stored as git notes only travel when explicitly pushed or fetched.
"""

import typer

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error
from devledger.core.errors import LedgerError

app = typer.Typer(
    name="notes",
    help="Sync ledger notes with a remote",
    no_args_is_help=True,
)


@app.command(name="init")
def init(
    remote: str | None = typer.Option(None, "--remote", help="Remote to configure"),
) -> None:
    """
    Configure a remote so plain 'git fetch' also fetches ledger notes.

    Examples:
        devledger notes init
        devledger notes init --remote upstream
    """
    ledger, config = open_ledger()
    remote = remote or config.remote
    try:
        ledger.configure_notes_fetch(remote)
    except LedgerError as e:
        exit_with_error(e)
    console.print(f"[green]✓[/green] Configured {remote} to fetch {config.notes_ref}")


@app.command()
def push(
    remote: str | None = typer.Option(None, "--remote", help="Remote to push to"),
) -> None:
    """
    Push ledger notes to a remote.

    Examples:
        devledger notes push
    """
    ledger, config = open_ledger()
    remote = remote or config.remote
    try:
        ledger.push_notes(remote)
    except LedgerError as e:
        exit_with_error(e)
    console.print(f"[green]✓[/green] Pushed {config.notes_ref} to {remote}")


@app.command()
def fetch(
    remote: str | None = typer.Option(None, "--remote", help="Remote to fetch from"),
) -> None:
    """
    Fetch ledger notes from a remote.

    Examples:
        devledger notes fetch --remote origin
    """
    ledger, config = open_ledger()
    remote = remote or config.remote
    try:
        ledger.fetch_notes(remote)
    except LedgerError as e:
        exit_with_error(e)
    console.print(f"[green]✓[/green] Fetched {config.notes_ref} from {remote}")
