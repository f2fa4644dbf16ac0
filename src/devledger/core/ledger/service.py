"""
Ledger service layer.

The Ledger composes a GitAdapter with a StorageBackend and is the single
entry point for writing, reading and filtering entries. Every interface
(CLI, catch-up, scripts) goes through it so that validation, conflict
detection and pending-commit resolution behave the same everywhere.

Reads are point-in-time snapshots: each call loads the backend's record set
and then filters it in memory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from devledger.core.config import LedgerConfig, load_config
from devledger.core.errors import ConflictError, LedgerError, UserError
from devledger.core.git.models import Commit, Diffstat, sort_newest_first
from devledger.core.git.repo import GitAdapter, GitError, GitRepo
from devledger.core.ledger.backend import ListStats, StorageBackend, get_backend
from devledger.core.ledger.builder import build_entry, summary_from_commits, work_items_from_key
from devledger.core.ledger.filters import (
    filter_by_commits,
    filter_by_tags,
    filter_by_time,
    parse_range,
    sort_by_created_desc,
)
from devledger.core.ledger.grouping import CommitGroup
from devledger.core.ledger.models import (
    KIND_ENTRY,
    SCHEMA_VERSION,
    Entry,
    Summary,
    generate_id,
    utc_now,
)
from devledger.core.ledger.notes import NotesBackend
from devledger.core.ledger.pending import AnchorResolver, PendingCommits, latest_entry

logger = logging.getLogger(__name__)


class Ledger:
    """
    Orchestrates entry storage on top of git.

    Example:
        >>> ledger = Ledger(GitRepo(Path(".")), FileBackend(Path(".devledger")))
        >>> pending = ledger.get_pending_commits()
        >>> entry = build_entry(pending.commits, summary)
        >>> ledger.write_entry(entry)
        >>> ledger.get_last_n_entries(5)
    """

    def __init__(self, git: GitAdapter, backend: StorageBackend) -> None:
        """
        Initialize the ledger.

        Args:
            git: Read access to version control
            backend: Entry storage (files or notes)
        """
        self.git = git
        self.backend = backend
        self.resolver = AnchorResolver(git)

    @classmethod
    def open(cls, project_dir: Path | None = None, config: LedgerConfig | None = None) -> Ledger:
        """
        Build a Ledger for a working copy using the configured backend.

        Args:
            project_dir: Directory inside the repository (defaults to cwd)
            config: Configuration (defaults to load_config for project_dir)

        Raises:
            GitError: If project_dir is not inside a git repository
        """
        git = GitRepo(project_dir)
        root = git.repo_root()
        if config is None:
            config = load_config(root)

        if config.backend == "notes":
            backend = get_backend("notes", git=git, notes_ref=config.notes_ref)
        else:
            backend = get_backend(
                "files",
                root=root / config.ledger_dir,
                git=git,
                stage=config.stage_files,
            )
        logger.debug("Opened ledger at %s with %s backend", root, config.backend)
        return cls(git, backend)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_entry(self, entry: Entry, allow_overwrite: bool = False) -> Entry:
        """
        Validate and persist an entry.

        Missing schema, kind and ID are filled in; the ID is derived from
        the anchor commit and created_at.

        Args:
            entry: Entry to write
            allow_overwrite: Replace an existing entry with the same ID

        Returns:
            The entry as written

        Raises:
            EntryValidationError: If required fields are missing
            ConflictError: If the ID exists and allow_overwrite is False
            LedgerSystemError: If storage fails
        """
        updates: dict[str, object] = {}
        if not entry.schema_:
            updates["schema_"] = SCHEMA_VERSION
        if not entry.kind:
            updates["kind"] = KIND_ENTRY
        if not entry.id and entry.workset.anchor_commit:
            updates["id"] = generate_id(entry.workset.anchor_commit, entry.created_at)
        if updates:
            entry = entry.model_copy(update=updates)

        entry.validate_required()

        if not allow_overwrite and self.backend.exists(entry.id):
            raise ConflictError(f"entry already exists: {entry.id}")

        self.backend.store(entry)
        return entry

    def amend_entry(
        self,
        entry_id: str,
        *,
        what: str | None = None,
        why: str | None = None,
        how: str | None = None,
        tags: list[str] | None = None,
        notes: str | None = None,
    ) -> Entry:
        """
        Rewrite an entry with new summary text, tags or notes.

        The whole record is replaced; the workset and created_at are kept and
        updated_at is refreshed.

        Raises:
            UserError: If no field is given
            EntryNotFoundError: If the entry does not exist
        """
        if all(v is None for v in (what, why, how, tags, notes)):
            raise UserError("amend needs at least one of what, why, how, tags, notes")

        entry = self.backend.load(entry_id)
        summary = entry.summary.model_copy(
            update={
                k: v for k, v in (("what", what), ("why", why), ("how", how)) if v is not None
            }
        )
        updates: dict[str, object] = {"summary": summary, "updated_at": utc_now()}
        if tags is not None:
            updates["tags"] = list(dict.fromkeys(tags))
        if notes is not None:
            updates["notes"] = notes or None
        amended = entry.model_copy(update=updates)
        return self.write_entry(amended, allow_overwrite=True)

    def delete_entry(self, entry_id: str) -> None:
        """Remove an entry (explicit cleanup only)."""
        self.backend.delete(entry_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: str) -> Entry:
        return self.backend.load(entry_id)

    def list_entries(self) -> list[Entry]:
        """All entries, unordered."""
        return self.backend.list_entries()

    def list_entries_with_stats(self) -> tuple[list[Entry], ListStats]:
        return self.backend.list_entries_with_stats()

    def get_latest_entry(self) -> Entry | None:
        return latest_entry(self.list_entries())

    def get_last_n_entries(self, n: int) -> list[Entry]:
        """
        The ``n`` most recently created entries, newest first.

        Raises:
            UserError: If n <= 0
        """
        if n <= 0:
            raise UserError(f"n must be positive, got {n}")
        return sort_by_created_desc(self.list_entries())[:n]

    def filter_by_time(
        self, since: datetime | None = None, until: datetime | None = None
    ) -> list[Entry]:
        return filter_by_time(self.list_entries(), since, until)

    def filter_by_tag(self, tags: Iterable[str] | None) -> list[Entry]:
        return filter_by_tags(self.list_entries(), tags)

    def filter_by_commit_range(self, from_ref: str, to_ref: str) -> list[Entry]:
        """
        Entries covering any commit in ``from_ref..to_ref``.

        Raises:
            UserError: If either ref is empty or does not resolve
        """
        commit_set = {c.sha for c in self._range_commits(from_ref, to_ref)}
        return filter_by_commits(self.list_entries(), commit_set)

    def query(
        self,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
        tags: Iterable[str] | None = None,
        commit_range: str | None = None,
        last: int | None = None,
    ) -> list[Entry]:
        """
        Combined filter over a single snapshot, newest first.

        Args:
            since: Inclusive lower bound on created_at
            until: Inclusive upper bound on created_at
            tags: Match entries with any of these tags
            commit_range: ``A..B`` commit range
            last: Keep only the first ``last`` results

        Raises:
            UserError: On invalid arguments
        """
        if last is not None and last <= 0:
            raise UserError(f"--last must be positive, got {last}")

        entries = self.list_entries()
        if since is not None or until is not None:
            entries = filter_by_time(entries, since, until)
        entries = filter_by_tags(entries, tags)
        if commit_range:
            from_ref, to_ref = parse_range(commit_range)
            commit_set = {c.sha for c in self._range_commits(from_ref, to_ref)}
            entries = filter_by_commits(entries, commit_set)

        entries = sort_by_created_desc(entries)
        if last is not None:
            entries = entries[:last]
        return entries

    # ------------------------------------------------------------------
    # Git evidence
    # ------------------------------------------------------------------

    def get_pending_commits(self) -> PendingCommits:
        """Commits reachable from HEAD that no entry covers yet."""
        return self.resolver.resolve(self.list_entries())

    def resolve_commit(self, ref: str) -> str:
        """
        Full SHA of the commit ``ref`` names.

        Raises:
            UserError: If ``ref`` does not name exactly one commit
        """
        sha = self.git.resolve_commit(ref)
        if sha is None:
            raise UserError(f"not a commit in this repository: {ref}")
        return sha

    def log_range(self, from_ref: str, to_ref: str) -> list[Commit]:
        """Commits in ``from_ref..to_ref``, newest first."""
        return sort_newest_first(self._range_commits(from_ref, to_ref))

    def _range_commits(self, from_ref: str, to_ref: str) -> list[Commit]:
        if not from_ref or not to_ref:
            raise UserError("commit range needs both a start and an end ref")
        try:
            return self.git.log(from_ref, to_ref)
        except GitError as e:
            raise UserError(f"invalid commit range {from_ref}..{to_ref}: {e.stderr or e}") from e

    def group_diffstat(self, commits: list[Commit]) -> Diffstat | None:
        """
        Cumulative diffstat from the oldest commit's parent to the newest.

        Returns None when git cannot compute it; the entry is still written
        without a diffstat.
        """
        if not commits:
            return None
        anchor = commits[0].sha
        oldest = commits[-1].sha
        try:
            return self.git.get_diffstat(f"{oldest}^", anchor)
        except GitError as e:
            logger.warning("Could not compute diffstat for %s..%s: %s", oldest[:7], anchor[:7], e)
            return None

    # ------------------------------------------------------------------
    # Notes synchronization
    # ------------------------------------------------------------------

    def _notes_backend(self) -> NotesBackend:
        if not isinstance(self.backend, NotesBackend):
            raise UserError(
                f"notes sync requires the notes backend (current: {self.backend.backend_name})"
            )
        return self.backend

    def push_notes(self, remote: str = "origin") -> None:
        self._notes_backend().push(remote)

    def fetch_notes(self, remote: str = "origin") -> None:
        self._notes_backend().fetch(remote)

    def configure_notes_fetch(self, remote: str = "origin") -> None:
        self._notes_backend().configure_fetch(remote)


@dataclass
class BatchResult:
    """Entries produced by batch logging.

    Attributes:
        entries: Entries written (or, for a dry run, built) in group order
        skipped: Keys of groups whose entry already existed
    """

    entries: list[Entry]
    skipped: list[str]
    dry_run: bool = False


def build_group_entry(
    ledger: Ledger,
    group: CommitGroup,
    summary: Summary | None = None,
    tags: Iterable[str] | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Entry:
    """
    Build the entry documenting one commit group.

    The summary defaults to one derived from the commit messages, and a
    work-item group key is recorded as the entry's work item.
    """
    return build_entry(
        group.commits,
        summary or summary_from_commits(group.commits),
        diffstat=ledger.group_diffstat(group.commits),
        tags=tags,
        work_items=work_items_from_key(group.key),
        notes=notes,
        now=now,
    )


def batch_log(
    ledger: Ledger,
    groups: list[CommitGroup],
    tags: Iterable[str] | None = None,
    dry_run: bool = False,
) -> BatchResult:
    """
    Write one entry per group with summaries taken from commit messages.

    A group whose entry already exists is skipped rather than duplicated.
    On a dry run entries are built but not written.

    Raises:
        LedgerSystemError: If storage fails; entries written before the
            failure remain
    """
    tags = list(tags or [])
    result = BatchResult(entries=[], skipped=[], dry_run=dry_run)
    for group in groups:
        if not group.commits:
            continue
        entry = build_group_entry(ledger, group, tags=tags)
        if dry_run:
            result.entries.append(entry)
            continue
        try:
            result.entries.append(ledger.write_entry(entry))
        except ConflictError as e:
            logger.warning("Skipping group %s: %s", group.key, e)
            result.skipped.append(group.key)
        except LedgerError:
            logger.error("Batch logging stopped at group %s", group.key)
            raise
    return result
