"""
Pending-commit resolution.

Pending commits are commits reachable from HEAD that no ledger entry covers
yet. They are found relative to the anchor of the most recently created
entry: everything in ``anchor..HEAD`` is pending, except commits some entry
already lists (entries written concurrently by catch-up can be created out
of history order).

When history has been rewritten (rebase, squash merge, gc) the latest
anchor may no longer be part of HEAD's history. Resolution then falls back
to every commit reachable from HEAD and flags the result as stale, so the
caller can warn instead of reporting full coverage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from devledger.core.git.models import Commit, sort_newest_first
from devledger.core.git.repo import GitAdapter, GitError
from devledger.core.ledger.models import Entry

logger = logging.getLogger(__name__)


@dataclass
class PendingCommits:
    """
    Result of pending-commit resolution.

    Attributes:
        commits: Undocumented commits, newest first
        latest: Most recently created entry, or None if the ledger is empty
        stale_anchor: True when the latest anchor is missing from HEAD's
            history and ``commits`` is the full reachable set
    """

    commits: list[Commit] = field(default_factory=list)
    latest: Entry | None = None
    stale_anchor: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.commits

    @property
    def anchor(self) -> str | None:
        return self.latest.workset.anchor_commit if self.latest else None


def latest_entry(entries: list[Entry]) -> Entry | None:
    """Entry with the greatest created_at; ties go to the greater ID."""
    if not entries:
        return None
    return max(entries, key=lambda e: (e.created_at, e.id))


class AnchorResolver:
    """
    Compute pending commits for a set of entries.

    Example:
        >>> resolver = AnchorResolver(GitRepo(Path(".")))
        >>> pending = resolver.resolve(ledger.list_entries())
        >>> if pending.stale_anchor:
        ...     print("anchor rewritten; showing all commits")
    """

    def __init__(self, git: GitAdapter) -> None:
        self.git = git

    def resolve(self, entries: list[Entry]) -> PendingCommits:
        """
        Resolve pending commits against the current HEAD.

        Raises:
            GitError: If HEAD or the reachable history cannot be read
        """
        head = self.git.head()
        latest = latest_entry(entries)

        if latest is None:
            commits = self.git.commits_reachable_from(head)
            return PendingCommits(commits=sort_newest_first(commits))

        anchor = latest.workset.anchor_commit
        ahead = self._commits_since(anchor, head)
        if ahead is None:
            logger.warning(
                "Anchor %s of entry %s is not in the current history; "
                "treating all commits reachable from HEAD as pending",
                anchor[:7],
                latest.id,
            )
            commits = self.git.commits_reachable_from(head)
            return PendingCommits(
                commits=sort_newest_first(commits), latest=latest, stale_anchor=True
            )

        covered = {sha for entry in entries for sha in entry.workset.commits}
        pending = [c for c in sort_newest_first(ahead) if c.sha not in covered]
        return PendingCommits(commits=pending, latest=latest)

    def _commits_since(self, anchor: str, head: str) -> list[Commit] | None:
        """Commits in anchor..head, or None when the anchor is not an ancestor of head."""
        if not anchor:
            return None
        try:
            if not self.git.is_ancestor(anchor, head):
                return None
            return self.git.log(anchor, head)
        except GitError as e:
            logger.debug("Anchor lookup failed for %s: %s", anchor[:7], e)
            return None
