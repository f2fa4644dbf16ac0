"""
devledger CLI - log command.

Records entries for pending commits, either one entry from explicit
what/why/how text or, with --batch, one entry per commit group with
summaries taken from commit messages.
"""

import json

import typer
from rich.markup import escape

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error
from devledger.core.errors import LedgerError, UserError
from devledger.core.ledger import (
    Entry,
    GroupStrategy,
    Ledger,
    Summary,
    batch_log,
    build_entry,
    group_commits,
    parse_range,
    parse_work_items,
    summary_from_commits,
)
from devledger.core.ledger.builder import MINOR_DEFAULT


def log(
    what: str | None = typer.Argument(None, help="What was done"),
    why: str | None = typer.Option(
        None, "--why", help="Why this change was made (required unless --minor or --auto)"
    ),
    how: str | None = typer.Option(
        None, "--how", help="How it was implemented (required unless --minor or --auto)"
    ),
    tags: list[str] | None = typer.Option(
        None, "--tag", "-t", help="Tag for categorization (repeatable)"
    ),
    work_items: list[str] | None = typer.Option(
        None, "--work-item", help="Work item reference as system:id (repeatable)"
    ),
    range_str: str | None = typer.Option(
        None, "--range", help="Explicit commit range (e.g. abc123..def456)"
    ),
    anchor: str | None = typer.Option(
        None, "--anchor", help="Override anchor commit (default: newest commit)"
    ),
    notes: str | None = typer.Option(None, "--notes", help="Free-form deliberation notes"),
    minor: bool = typer.Option(False, "--minor", help="Trivial change; why/how optional"),
    auto: bool = typer.Option(
        False, "--auto", help="Take what/why/how from commit messages"
    ),
    batch: bool = typer.Option(
        False, "--batch", help="One entry per work-item trailer or day"
    ),
    strategy: str = typer.Option(
        "auto", "--strategy", help="Grouping for --batch: auto, day, work-item"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be written without writing"
    ),
    push: bool = typer.Option(False, "--push", help="Push notes after writing"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Record a ledger entry for pending commits.

    Examples:
        devledger log "Fix auth bypass" --why "Users were locked out" --how "Null check"
        devledger log "Bump deps" --minor
        devledger log --auto --tag security
        devledger log --batch --strategy day --dry-run
        devledger log "Backfill" --why ... --how ... --range abc123..def456
    """
    ledger, config = open_ledger()

    try:
        if batch:
            _reject_batch_flags(
                {
                    "WHAT": what,
                    "--why": why,
                    "--how": how,
                    "--work-item": work_items,
                    "--anchor": anchor,
                    "--notes": notes,
                    "--minor": minor,
                    "--auto": auto,
                }
            )
            _log_batch(ledger, tags or [], strategy, range_str, dry_run, json_output)
        else:
            entry = _log_single(
                ledger,
                what=what,
                why=why,
                how=how,
                tags=tags or [],
                work_items=work_items or [],
                range_str=range_str,
                anchor=anchor,
                notes=notes,
                minor=minor,
                auto=auto,
            )
            if dry_run:
                _print_dry_run([entry], json_output)
                return
            entry = ledger.write_entry(entry)
            if json_output:
                typer.echo(json.dumps({"status": "created", "id": entry.id}))
            else:
                console.print(f"[green]✓[/green] Created {entry.id}")

        if push and not dry_run:
            _push(ledger, config.remote)
    except LedgerError as e:
        exit_with_error(e)


def _log_single(
    ledger: Ledger,
    *,
    what: str | None,
    why: str | None,
    how: str | None,
    tags: list[str],
    work_items: list[str],
    range_str: str | None,
    anchor: str | None,
    notes: str | None,
    minor: bool,
    auto: bool,
) -> Entry:
    if range_str:
        from_ref, to_ref = parse_range(range_str)
        commits = ledger.log_range(from_ref, to_ref)
    else:
        commits = ledger.get_pending_commits().commits
    if not commits:
        raise UserError("no pending commits to document; use --range for a specific range")

    if auto:
        summary = summary_from_commits(commits)
        summary = Summary(
            what=what or summary.what,
            why=why or summary.why,
            how=how or summary.how,
        )
    else:
        if not what or not what.strip():
            raise UserError("what is required (pass it as the first argument or use --auto)")
        if minor:
            why = why or MINOR_DEFAULT
            how = how or MINOR_DEFAULT
        if not why:
            raise UserError("--why is required (use --minor or --auto for alternatives)")
        if not how:
            raise UserError("--how is required (use --minor or --auto for alternatives)")
        summary = Summary(what=what, why=why, how=how)

    return build_entry(
        commits,
        summary,
        diffstat=ledger.group_diffstat(commits),
        tags=tags,
        work_items=parse_work_items(work_items),
        anchor=ledger.resolve_commit(anchor) if anchor else None,
        notes=notes,
    )


def _reject_batch_flags(flags: dict[str, object]) -> None:
    """Batch entries take their text from commit messages; per-entry options do not apply."""
    given = [label for label, value in flags.items() if value]
    if given:
        raise UserError(f"--batch cannot be combined with {', '.join(given)}")


def _log_batch(
    ledger: Ledger,
    tags: list[str],
    strategy: str,
    range_str: str | None,
    dry_run: bool,
    json_output: bool,
) -> None:
    group_strategy = GroupStrategy.parse(strategy)
    if range_str:
        from_ref, to_ref = parse_range(range_str)
        commits = ledger.log_range(from_ref, to_ref)
    else:
        commits = ledger.get_pending_commits().commits
    if not commits:
        raise UserError("no pending commits to document")

    groups = group_commits(commits, group_strategy)
    result = batch_log(ledger, groups, tags=tags, dry_run=dry_run)

    if dry_run:
        _print_dry_run(result.entries, json_output)
        return

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "status": "created",
                    "count": len(result.entries),
                    "ids": [e.id for e in result.entries],
                    "skipped": result.skipped,
                },
                indent=2,
            )
        )
        return

    console.print(f"[green]✓[/green] Created {len(result.entries)} entries")
    for entry in result.entries:
        console.print(f"  {entry.id}  {escape(entry.summary.what)}")
    for key in result.skipped:
        console.print(f"  [yellow]skipped[/yellow] {escape(key)} (entry exists)")


def _print_dry_run(entries: list[Entry], json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return
    console.print(f"[blue]Dry run[/blue] - would create {len(entries)} entries:")
    for entry in entries:
        console.print(f"\n  {entry.id}")
        console.print(f"    What: {escape(entry.summary.what)}")
        console.print(f"    Why:  {escape(entry.summary.why)}")
        console.print(f"    How:  {escape(entry.summary.how)}")
        console.print(f"    Commits: {len(entry.workset.commits)}")


def _push(ledger: Ledger, remote: str) -> None:
    ledger.push_notes(remote)
    console.print(f"[green]✓[/green] Pushed notes to {remote}")
