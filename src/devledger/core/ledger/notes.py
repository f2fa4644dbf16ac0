"""
Git-notes entry storage.

Each entry is a JSON note attached to its anchor commit under a single
notes ref (``refs/notes/devledger`` by default). Notes travel with the
repository but only when explicitly pushed or fetched; this backend never
synchronizes on its own.
"""

from __future__ import annotations

import logging
import re
import threading

from devledger.core.errors import (
    ConflictError,
    EntryNotFoundError,
    NotLedgerRecordError,
    UserError,
)
from devledger.core.git.repo import GitRepo
from devledger.core.ledger.backend import ListStats, register_backend
from devledger.core.ledger.models import Entry

logger = logging.getLogger(__name__)

DEFAULT_NOTES_REF = "refs/notes/devledger"

# Trailing short SHA of an entry ID (dl_<timestamp>_<anchor[:6]>)
_ID_ANCHOR_RE = re.compile(r"_([0-9a-f]{4,40})$")


@register_backend("notes")
class NotesBackend:
    """
    Store entries as git notes on their anchor commits.

    Example:
        >>> backend = NotesBackend(GitRepo(Path(".")))
        >>> backend.store(entry)
        >>> backend.push("origin")
    """

    def __init__(self, git: GitRepo, notes_ref: str = DEFAULT_NOTES_REF) -> None:
        self.git = git
        self.notes_ref = notes_ref
        # Every write moves the same notes ref; serialize writers in-process
        self._write_lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "notes"

    @property
    def location(self) -> str:
        return self.notes_ref

    def store(self, entry: Entry) -> None:
        anchor = entry.workset.anchor_commit
        with self._write_lock:
            existing = self.git.read_note(anchor, self.notes_ref)
            if existing is not None:
                owner = self._owner_of(existing)
                if owner != entry.id:
                    raise ConflictError(
                        f"commit {anchor[:7]} already carries a note for "
                        f"{owner or 'another record'}"
                    )
            self.git.write_note(anchor, entry.to_json(), self.notes_ref, force=True)
        logger.info("Wrote entry %s as note on %s", entry.id, anchor[:7])

    @staticmethod
    def _owner_of(note: str) -> str | None:
        try:
            return Entry.from_json(note).id
        except UserError:
            return None

    def _find(self, entry_id: str) -> tuple[str, Entry] | None:
        """
        Locate (commit, entry) for an ID.

        IDs end with their anchor's short SHA, so normally only that commit's
        note is read. An ambiguous short SHA narrows the scan to noted commits
        sharing the prefix; IDs without one fall back to reading every note.
        """
        match = _ID_ANCHOR_RE.search(entry_id)
        if match is None:
            candidates = self.git.list_noted_commits(self.notes_ref)
        else:
            prefix = match.group(1)
            commit = self.git.resolve_commit(prefix)
            if commit is not None:
                candidates = [commit]
            else:
                candidates = [
                    c for c in self.git.list_noted_commits(self.notes_ref) if c.startswith(prefix)
                ]

        for commit in candidates:
            entry = self._read(commit)
            if entry is not None and entry.id == entry_id:
                return commit, entry
        return None

    def _read(self, commit: str) -> Entry | None:
        note = self.git.read_note(commit, self.notes_ref)
        if note is None:
            return None
        try:
            return Entry.from_json(note)
        except UserError:
            return None

    def load(self, entry_id: str) -> Entry:
        found = self._find(entry_id)
        if found is None:
            raise EntryNotFoundError(entry_id)
        return found[1]

    def exists(self, entry_id: str) -> bool:
        return self._find(entry_id) is not None

    def list_entries(self) -> list[Entry]:
        entries, _ = self.list_entries_with_stats()
        return entries

    def list_entries_with_stats(self) -> tuple[list[Entry], ListStats]:
        stats = ListStats()
        entries: list[Entry] = []
        for commit in self.git.list_noted_commits(self.notes_ref):
            note = self.git.read_note(commit, self.notes_ref)
            if note is None:
                continue
            stats.total += 1
            try:
                entries.append(Entry.from_json(note))
                stats.parsed += 1
            except NotLedgerRecordError:
                stats.skipped += 1
                stats.not_ledger += 1
            except UserError as e:
                stats.skipped += 1
                stats.parse_errors += 1
                logger.warning("Skipping unreadable note on %s: %s", commit[:7], e)
        return entries, stats

    def delete(self, entry_id: str) -> None:
        found = self._find(entry_id)
        if found is None:
            raise EntryNotFoundError(entry_id)
        with self._write_lock:
            self.git.remove_note(found[0], self.notes_ref)
        logger.info("Deleted entry %s", entry_id)

    # ------------------------------------------------------------------
    # Explicit synchronization
    # ------------------------------------------------------------------

    def configure_fetch(self, remote: str) -> None:
        """Make plain ``git fetch <remote>`` also fetch the notes ref."""
        self.git.configure_notes_fetch(remote, self.notes_ref)

    def push(self, remote: str) -> None:
        self.git.push_notes(remote, self.notes_ref)
        logger.info("Pushed %s to %s", self.notes_ref, remote)

    def fetch(self, remote: str) -> None:
        self.git.fetch_notes(remote, self.notes_ref)
        logger.info("Fetched %s from %s", self.notes_ref, remote)
