"""
Development ledger: entries pairing commit evidence with rationale.

Example:
    >>> from devledger.core.ledger import Ledger
    >>> ledger = Ledger.open()
    >>> pending = ledger.get_pending_commits()
    >>> pending.stale_anchor
    False
"""

from devledger.core.ledger.backend import (
    ListStats,
    StorageBackend,
    get_backend,
    list_backends,
    register_backend,
)
from devledger.core.ledger.builder import (
    build_entry,
    commit_range,
    parse_work_item,
    parse_work_items,
    summary_from_commits,
    work_items_from_key,
)
from devledger.core.ledger.files import FileBackend
from devledger.core.ledger.filters import (
    filter_by_commits,
    filter_by_tags,
    filter_by_time,
    parse_range,
    parse_since_value,
    parse_until_value,
    sort_by_created_desc,
)
from devledger.core.ledger.grouping import (
    UNTRACKED_KEY,
    CommitGroup,
    GroupStrategy,
    extract_work_item_trailer,
    group_commits,
)
from devledger.core.ledger.models import (
    SCHEMA_VERSION,
    Entry,
    Summary,
    WorkItem,
    Workset,
    generate_id,
)
from devledger.core.ledger.notes import DEFAULT_NOTES_REF, NotesBackend
from devledger.core.ledger.pending import AnchorResolver, PendingCommits
from devledger.core.ledger.service import BatchResult, Ledger, batch_log, build_group_entry

__all__ = [
    # Models
    "Entry",
    "Summary",
    "WorkItem",
    "Workset",
    "SCHEMA_VERSION",
    "generate_id",
    # Storage
    "StorageBackend",
    "ListStats",
    "FileBackend",
    "NotesBackend",
    "DEFAULT_NOTES_REF",
    "get_backend",
    "list_backends",
    "register_backend",
    # Pending resolution and grouping
    "AnchorResolver",
    "PendingCommits",
    "CommitGroup",
    "GroupStrategy",
    "UNTRACKED_KEY",
    "extract_work_item_trailer",
    "group_commits",
    # Entry construction
    "build_entry",
    "commit_range",
    "parse_work_item",
    "parse_work_items",
    "summary_from_commits",
    "work_items_from_key",
    # Filters
    "filter_by_commits",
    "filter_by_tags",
    "filter_by_time",
    "parse_range",
    "parse_since_value",
    "parse_until_value",
    "sort_by_created_desc",
    # Service
    "Ledger",
    "BatchResult",
    "batch_log",
    "build_group_entry",
]
