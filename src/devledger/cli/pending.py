"""
devledger CLI - pending command.

Lists commits reachable from HEAD that no entry documents yet.
"""

import json

import typer
from rich.markup import escape
from rich.table import Table

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error
from devledger.core.errors import LedgerError


def pending(
    count: bool = typer.Option(
        False,
        "--count",
        help="Show count only, without commit list",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show undocumented commits since the last entry.

    Examples:
        devledger pending            # List pending commits
        devledger pending --count    # Just the number
        devledger pending --json     # Machine-readable output
    """
    ledger, _ = open_ledger()
    try:
        result = ledger.get_pending_commits()
    except LedgerError as e:
        exit_with_error(e)

    if json_output:
        payload = {
            "count": len(result.commits),
            "last_entry": result.latest.id if result.latest else None,
            "anchor": result.anchor,
            "stale_anchor": result.stale_anchor,
        }
        if not count:
            payload["commits"] = [
                {"sha": c.sha, "short": c.short, "subject": c.subject} for c in result.commits
            ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if result.stale_anchor:
        console.print(
            f"[yellow]⚠[/yellow]  Anchor {result.anchor[:7] if result.anchor else ''} of the "
            "latest entry is no longer in history (rebase or squash?); "
            "showing all reachable commits"
        )

    if count:
        console.print(str(len(result.commits)))
        return

    if result.is_empty:
        console.print("[green]✓[/green] No pending commits")
        return

    console.print(f"[bold]{len(result.commits)} pending commit(s)[/bold]")
    if result.latest:
        console.print(f"[dim]Since {result.latest.id}[/dim]")
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("SHA", style="cyan")
    table.add_column("Subject")
    for commit in result.commits:
        table.add_row(commit.short, escape(commit.subject))
    console.print(table)
