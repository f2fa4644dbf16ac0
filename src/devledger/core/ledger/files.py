"""
File-based entry storage.

Each entry is one JSON file at ``<root>/YYYY/MM/DD/<entry-id>.json``, with
the date taken from the entry ID. Partitioning by day keeps directories
small as the ledger grows and makes the history browsable in a checkout.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from devledger.core.errors import (
    EntryNotFoundError,
    LedgerSystemError,
    NotLedgerRecordError,
    UserError,
)
from devledger.core.git.repo import GitError, GitRepo
from devledger.core.ledger.backend import ListStats, register_backend
from devledger.core.ledger.models import Entry, entry_date_parts

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp-"


@register_backend("files")
class FileBackend:
    """
    Store entries as JSON files under a date-partitioned directory.

    Example:
        >>> backend = FileBackend(Path(".devledger"))
        >>> backend.store(entry)
        >>> backend.entry_path(entry.id)
        PosixPath('.devledger/2026/01/19/dl_2026-01-19T10:04:05Z_8f2c1a.json')
    """

    def __init__(
        self,
        root: Path,
        git: GitRepo | None = None,
        stage: bool = False,
    ) -> None:
        """
        Initialize the file backend.

        Args:
            root: Ledger directory (e.g. <repo>/.devledger)
            git: Repository used to stage written files
            stage: Whether to ``git add`` each written file
        """
        self.root = Path(root)
        self.git = git
        self.stage = stage and git is not None
        # git add takes the index lock; serialize it across worker threads
        self._stage_lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "files"

    @property
    def location(self) -> str:
        return str(self.root)

    def entry_dir(self, entry_id: str) -> Path:
        """Directory for an entry; IDs without a date fall back to the root."""
        parts = entry_date_parts(entry_id)
        if parts is None:
            return self.root
        return self.root.joinpath(*parts)

    def entry_path(self, entry_id: str) -> Path:
        return self.entry_dir(entry_id) / f"{entry_id}.json"

    def exists(self, entry_id: str) -> bool:
        return self.entry_path(entry_id).is_file()

    def store(self, entry: Entry) -> None:
        path = self.entry_path(entry.id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(path, entry.to_json(indent=2) + "\n")
        except OSError as e:
            raise LedgerSystemError(f"failed to write entry {entry.id}: {e}") from e

        logger.info("Wrote entry %s to %s", entry.id, path)

        if self.stage and self.git is not None:
            try:
                with self._stage_lock:
                    self.git.add(path)
            except GitError as e:
                raise LedgerSystemError(f"failed to stage entry file {path}: {e}") from e

    def load(self, entry_id: str) -> Entry:
        path = self.entry_path(entry_id)
        if not path.is_file():
            raise EntryNotFoundError(entry_id)
        return self._read(path)

    def _read(self, path: Path) -> Entry:
        try:
            data = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise UserError(f"entry file {path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise LedgerSystemError(f"failed to read entry file {path}: {e}") from e
        return Entry.from_json(data)

    def list_entries(self) -> list[Entry]:
        entries, _ = self.list_entries_with_stats()
        return entries

    def list_entries_with_stats(self) -> tuple[list[Entry], ListStats]:
        stats = ListStats()
        entries: list[Entry] = []

        if not self.root.is_dir():
            return entries, stats

        for path in sorted(self.root.rglob("*.json")):
            if path.name.startswith(TEMP_PREFIX) or not path.is_file():
                continue
            stats.total += 1
            try:
                entries.append(self._read(path))
                stats.parsed += 1
            except NotLedgerRecordError:
                stats.skipped += 1
                stats.not_ledger += 1
            except UserError as e:
                stats.skipped += 1
                stats.parse_errors += 1
                logger.warning("Skipping unreadable entry file %s: %s", path, e)

        return entries, stats

    def delete(self, entry_id: str) -> None:
        path = self.entry_path(entry_id)
        if not path.is_file():
            raise EntryNotFoundError(entry_id)
        try:
            path.unlink()
        except OSError as e:
            raise LedgerSystemError(f"failed to delete entry file {path}: {e}") from e
        logger.info("Deleted entry %s", entry_id)


def _atomic_write(path: Path, content: str) -> None:
    """Write via a temp file in the target directory and rename over the target."""
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=TEMP_PREFIX, suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
