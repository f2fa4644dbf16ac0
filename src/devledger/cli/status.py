"""
devledger CLI - status command.

Shows repository state, where entries are stored, and what a listing pass
over the store found (including records it had to skip).
"""

import json

import typer
from rich.markup import escape
from rich.table import Table

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error
from devledger.core.errors import LedgerError
from devledger.core.git import GitError, GitRepo
from devledger.core.ledger.pending import latest_entry


def status(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show repository and ledger state.

    Examples:
        devledger status          # Repository, storage and entry counts
        devledger status --json   # Machine-readable output
    """
    ledger, config = open_ledger()
    git = GitRepo()

    try:
        entries, stats = ledger.list_entries_with_stats()
        root = git.repo_root()
        branch = git.current_branch()
    except LedgerError as e:
        exit_with_error(e)

    try:
        head = git.head()
    except GitError:
        # Unborn branch: no commits yet
        head = None

    latest = latest_entry(entries)

    if json_output:
        payload = {
            "repo": root.name,
            "branch": branch,
            "head": head,
            "backend": ledger.backend.backend_name,
            "location": ledger.backend.location,
            "entry_count": len(entries),
            "latest_entry": latest.id if latest else None,
            "records_total": stats.total,
            "records_skipped": stats.skipped,
            "not_ledger": stats.not_ledger,
            "parse_errors": stats.parse_errors,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    repo_table = Table(title="Repository", show_header=False)
    repo_table.add_column("Label", style="cyan")
    repo_table.add_column("Value")
    repo_table.add_row("Repo", escape(root.name))
    repo_table.add_row("Branch", escape(branch) if branch else "[dim](detached)[/dim]")
    repo_table.add_row("HEAD", head[:12] if head else "[dim](no commits)[/dim]")
    console.print(repo_table)
    console.print()

    store_table = Table(title="Ledger Storage", show_header=False)
    store_table.add_column("Label", style="cyan")
    store_table.add_column("Value")
    store_table.add_row("Backend", ledger.backend.backend_name)
    store_table.add_row("Location", escape(ledger.backend.location))
    store_table.add_row("Records", str(stats.total))
    store_table.add_row("Entries", f"[green]{len(entries)}[/green]")
    if latest:
        store_table.add_row("Latest", latest.id)
    if stats.skipped:
        store_table.add_row(
            "Skipped",
            f"[yellow]{stats.skipped}[/yellow] "
            f"({stats.not_ledger} not ledger, {stats.parse_errors} parse error)",
        )
    console.print(store_table)
    if config.backend == "notes" and not git.notes_fetch_configured(config.remote, config.notes_ref):
        console.print(
            f"\n[dim]Tip: run 'devledger notes init' so 'git fetch {escape(config.remote)}' "
            "also fetches entries[/dim]"
        )
