"""
devledger CLI - catchup command.

Backfills entries for undocumented history by asking an LLM for
what/why/how text, one entry per commit group.
"""

import json

import typer
from rich.markup import escape

from devledger.cli.context import open_ledger
from devledger.cli.errors import console, exit_with_error, print_error
from devledger.core.catchup import (
    CatchupEntryRef,
    ClaudeCLIGenerator,
    EnrichmentScheduler,
    GroupFailure,
)
from devledger.core.errors import LedgerError, UserError
from devledger.core.ledger import GroupStrategy, group_commits, parse_range


class _ConsoleCallback:
    """Progress lines for a catch-up run."""

    def __init__(self, quiet: bool) -> None:
        self.quiet = quiet

    def on_start(self, num_groups: int, num_workers: int) -> None:
        if not self.quiet:
            console.print(
                f"[blue]Documenting {num_groups} group(s) with {num_workers} worker(s)...[/blue]"
            )

    def on_group_complete(self, ref: CatchupEntryRef) -> None:
        if not self.quiet:
            console.print(f"  [green]✓[/green] {escape(ref.group_key)}")

    def on_group_failed(self, failure: GroupFailure) -> None:
        if not self.quiet:
            console.print(f"  [red]✗[/red] {escape(failure.group_key)}")


def catchup(
    model: str | None = typer.Option(None, "--model", "-m", help="Model for the generator"),
    parallel: int | None = typer.Option(None, "--parallel", help="Concurrent generator calls"),
    strategy: str | None = typer.Option(
        None, "--strategy", help="Grouping: auto, day, work-item"
    ),
    range_str: str | None = typer.Option(
        None, "--range", help="Specific commit range (A..B) instead of pending commits"
    ),
    tags: list[str] | None = typer.Option(
        None, "--tag", "-t", help="Tag added to every entry (repeatable)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview entries without writing"),
    push: bool = typer.Option(False, "--push", help="Push notes after creating entries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Generate entries for undocumented commits using an LLM.

    Examples:
        devledger catchup --dry-run
        devledger catchup --model haiku --parallel 3
        devledger catchup --range v1.0..v1.1 --tag backfill
    """
    ledger, config = open_ledger()
    settings = config.catchup

    try:
        if range_str:
            from_ref, to_ref = parse_range(range_str)
            commits = ledger.log_range(from_ref, to_ref)
        else:
            commits = ledger.get_pending_commits().commits
        if not commits:
            raise UserError("no pending commits; run 'devledger pending'")

        groups = group_commits(commits, GroupStrategy.parse(strategy or settings.strategy))
        scheduler = EnrichmentScheduler(
            ledger,
            ClaudeCLIGenerator(model=model or settings.model, timeout=settings.timeout_seconds),
            parallel=parallel if parallel is not None else settings.parallel,
            dry_run=dry_run,
            tags=tags or [],
            callback=_ConsoleCallback(quiet=json_output),
        )
        result = scheduler.run(groups)
    except LedgerError as e:
        exit_with_error(e)
    except KeyboardInterrupt:
        print_error("Catch-up interrupted; entries already written were kept")
        raise typer.Exit(130)

    entries = sorted(result.entries, key=lambda ref: ref.group_key, reverse=True)
    if json_output:
        status = "dry_run" if dry_run else "created"
        payload = {
            "status": status,
            "count": len(entries),
            "entries": [
                {
                    "id": ref.id,
                    "anchor": ref.anchor,
                    "group_key": ref.group_key,
                    **ref.summary.model_dump(),
                }
                for ref in entries
            ],
            "failures": [
                {"group_key": f.group_key, "error": f.error.message} for f in result.failures
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        verb = "Dry run - would create" if dry_run else "Created"
        console.print(f"\n{verb} {len(entries)} entries:")
        for ref in entries:
            console.print(f"\n  {ref.id} " + escape(f"[{ref.group_key}]"))
            console.print(f"    What: {escape(ref.summary.what)}")
            console.print(f"    Why:  {escape(ref.summary.why)}")
            console.print(f"    How:  {escape(ref.summary.how)}")

    if result.first_error is not None:
        exit_with_error(result.first_error)

    if push and not dry_run and entries:
        try:
            ledger.push_notes(config.remote)
        except LedgerError as e:
            exit_with_error(e)
        console.print(f"[green]✓[/green] Pushed notes to {config.remote}")
