"""
devledger CLI - commands for reading and amending entries.

show, query and amend operate on entries already in the ledger.
"""

import json

import typer
from rich.markup import escape
from rich.table import Table

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error
from devledger.core.errors import LedgerError, UserError
from devledger.core.ledger import Entry, parse_since_value, parse_until_value


def show(
    entry_id: str | None = typer.Argument(None, help="Entry ID"),
    latest: bool = typer.Option(False, "--latest", help="Show the most recent entry"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Show a single entry.

    Examples:
        devledger show dl_2026-01-19T10:04:05Z_8f2c1a
        devledger show --latest --json
    """
    ledger, _ = open_ledger()
    try:
        if latest:
            entry = ledger.get_latest_entry()
            if entry is None:
                raise UserError("the ledger has no entries yet")
        elif entry_id:
            entry = ledger.get_entry(entry_id)
        else:
            raise UserError("pass an entry ID or --latest")
    except LedgerError as e:
        exit_with_error(e)

    if json_output:
        typer.echo(entry.to_json(indent=2))
        return
    _print_entry(entry)


def query(
    last: int | None = typer.Option(None, "--last", "-n", help="Only the last N entries"),
    since: str | None = typer.Option(
        None, "--since", help="Entries since a duration (24h, 7d, 2w) or date (2026-01-17)"
    ),
    until: str | None = typer.Option(
        None, "--until", help="Entries until a duration or date (inclusive)"
    ),
    tags: list[str] | None = typer.Option(
        None, "--tag", "-t", help="Match entries with any of these tags (repeatable)"
    ),
    range_str: str | None = typer.Option(
        None, "--range", help="Entries covering commits in A..B"
    ),
    oneline: bool = typer.Option(False, "--oneline", help="Compact format: <id>  <what>"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Search ledger entries, newest first.

    Examples:
        devledger query --last 5
        devledger query --since 7d --tag security
        devledger query --range v1.0..v1.1 --json
    """
    ledger, _ = open_ledger()
    try:
        entries = ledger.query(
            since=parse_since_value(since) if since else None,
            until=parse_until_value(until) if until else None,
            tags=tags,
            commit_range=range_str,
            last=last,
        )
    except LedgerError as e:
        exit_with_error(e)

    if json_output:
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        console.print("[dim]No matching entries[/dim]")
        return

    if oneline:
        for entry in entries:
            console.print(f"{entry.id}  {escape(entry.summary.what)}")
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("What")
    table.add_column("Tags", style="dim")
    table.add_column("Commits", justify="right")
    for entry in entries:
        table.add_row(
            entry.id,
            escape(entry.summary.what),
            escape(", ".join(entry.tags)),
            str(len(entry.workset.commits)),
        )
    console.print(table)


def amend(
    entry_id: str = typer.Argument(..., help="Entry ID"),
    what: str | None = typer.Option(None, "--what", help="Replace the 'what' summary"),
    why: str | None = typer.Option(None, "--why", help="Replace the 'why' summary"),
    how: str | None = typer.Option(None, "--how", help="Replace the 'how' summary"),
    tags: list[str] | None = typer.Option(
        None, "--tag", "-t", help="Replace tags (repeatable)"
    ),
    notes: str | None = typer.Option(None, "--notes", help="Replace notes"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Rewrite an existing entry's summary, tags or notes.

    The commits an entry covers cannot be changed.

    Examples:
        devledger amend dl_2026-01-19T10:04:05Z_8f2c1a --why "Compliance requirement"
        devledger amend dl_2026-01-19T10:04:05Z_8f2c1a --tag security --tag auth
    """
    ledger, _ = open_ledger()
    try:
        entry = ledger.amend_entry(entry_id, what=what, why=why, how=how, tags=tags, notes=notes)
    except LedgerError as e:
        exit_with_error(e)

    if json_output:
        typer.echo(entry.to_json(indent=2))
        return
    console.print(f"[green]✓[/green] Amended {entry.id}")


def _print_entry(entry: Entry) -> None:
    console.print(f"\n[bold]{escape(entry.summary.what)}[/bold] ({entry.id})")
    console.print()
    console.print(f"Created: {entry.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    if entry.updated_at != entry.created_at:
        console.print(f"Updated: {entry.updated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    console.print()

    console.print("[bold]Why:[/bold]")
    console.print(f"  {escape(entry.summary.why)}")
    console.print("[bold]How:[/bold]")
    console.print(f"  {escape(entry.summary.how)}")
    console.print()

    workset = entry.workset
    console.print("[bold]Workset:[/bold]")
    console.print(f"  Anchor: {workset.anchor_commit[:12]}")
    if workset.range:
        console.print(f"  Range: {workset.range}")
    console.print(f"  Commits: {len(workset.commits)}")
    if workset.diffstat is not None:
        d = workset.diffstat
        console.print(f"  Changes: {d.files} files, +{d.insertions}/-{d.deletions}")

    if entry.tags:
        console.print(f"\nTags: {escape(', '.join(entry.tags))}")
    if entry.work_items:
        console.print(f"Work items: {escape(', '.join(str(w) for w in entry.work_items))}")
    if entry.notes:
        console.print("\n[bold]Notes:[/bold]")
        console.print(escape(entry.notes))
