"""
Entry construction from commits.

Manual logging, batch logging and catch-up all build entries the same way:
the anchor is the newest commit, the workset lists every covered commit in
newest-first order, and the range spans oldest..newest.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from devledger.core.errors import UserError
from devledger.core.git.models import Commit, Diffstat
from devledger.core.ledger.grouping import is_work_item_key
from devledger.core.ledger.models import (
    KIND_ENTRY,
    SCHEMA_VERSION,
    Entry,
    Summary,
    WorkItem,
    Workset,
    generate_id,
    utc_now,
)

AUTO_DEFAULT = "Auto-documented"
MINOR_DEFAULT = "Minor change"


def parse_work_item(item: str) -> WorkItem:
    """
    Parse ``system:id`` into a WorkItem.

    Raises:
        UserError: If the value is empty or either side is missing
    """
    if not item or not item.strip():
        raise UserError("work item cannot be empty")
    if ":" not in item:
        raise UserError(f"work item must be in format system:id, got {item!r}")
    system, item_id = (part.strip() for part in item.split(":", 1))
    if not system:
        raise UserError(f"work item system cannot be empty in {item!r}")
    if not item_id:
        raise UserError(f"work item id cannot be empty in {item!r}")
    return WorkItem(system=system, id=item_id)


def parse_work_items(items: Iterable[str] | None) -> list[WorkItem]:
    return [parse_work_item(item) for item in items or []]


def work_items_from_key(key: str) -> list[WorkItem]:
    """The work item named by a group key, if the key is one."""
    if not is_work_item_key(key):
        return []
    try:
        return [parse_work_item(key)]
    except UserError:
        return []


def commit_range(commits: list[Commit]) -> str:
    """``oldest..newest`` in short SHAs; empty for fewer than two commits."""
    if len(commits) <= 1:
        return ""
    return f"{commits[-1].short}..{commits[0].short}"


def summary_from_commits(commits: list[Commit]) -> Summary:
    """
    Derive a summary from commit messages.

    what: subjects joined with "; "
    why: first paragraph of the first commit body that has one
    how: the remaining paragraphs of that body
    """
    what = "; ".join(c.subject for c in commits if c.subject) or AUTO_DEFAULT
    why = how = ""
    for commit in commits:
        paragraphs = [p.strip() for p in commit.body.strip().split("\n\n") if p.strip()]
        paragraphs = [p for p in paragraphs if not _is_trailer_block(p)]
        if not paragraphs:
            continue
        why = paragraphs[0]
        how = "\n\n".join(paragraphs[1:])
        break
    return Summary(what=what, why=why or AUTO_DEFAULT, how=how or AUTO_DEFAULT)


def _is_trailer_block(paragraph: str) -> bool:
    # "Key: value" lines only, e.g. Work-item / Signed-off-by trailers
    lines = paragraph.splitlines()
    return all(":" in line and not line.startswith(" ") and " " not in line.split(":", 1)[0]
               for line in lines)


def build_entry(
    commits: list[Commit],
    summary: Summary,
    *,
    diffstat: Diffstat | None = None,
    tags: Iterable[str] | None = None,
    work_items: list[WorkItem] | None = None,
    anchor: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Entry:
    """
    Build a fresh entry covering ``commits`` (newest first).

    Raises:
        UserError: If there are no commits
    """
    if not commits:
        raise UserError("no commits to document")
    created = (now or utc_now()).replace(microsecond=0)
    anchor = anchor or commits[0].sha
    return Entry(
        schema=SCHEMA_VERSION,
        kind=KIND_ENTRY,
        id=generate_id(anchor, created),
        created_at=created,
        updated_at=created,
        workset=Workset(
            anchor_commit=anchor,
            commits=[c.sha for c in commits],
            range=commit_range(commits),
            diffstat=diffstat,
        ),
        summary=summary,
        tags=list(dict.fromkeys(tags or [])),
        work_items=list(work_items or []),
        notes=notes,
    )
