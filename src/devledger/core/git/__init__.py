"""
Git access for devledger.

Example:
    >>> from devledger.core.git import GitRepo
    >>> repo = GitRepo(Path("."))
    >>> repo.commits_reachable_from(repo.head())[:1]
"""

from devledger.core.git.models import Commit, Diffstat, sort_newest_first
from devledger.core.git.repo import (
    EMPTY_TREE_SHA,
    GitAdapter,
    GitError,
    GitRepo,
    parse_log_output,
    parse_shortstat,
)

__all__ = [
    "Commit",
    "Diffstat",
    "sort_newest_first",
    "GitAdapter",
    "GitRepo",
    "GitError",
    "EMPTY_TREE_SHA",
    "parse_log_output",
    "parse_shortstat",
]
