"""
Commit grouping for batch logging and catch-up.

Pending commits are partitioned into groups that each become one entry:

- ``work-item``: commits sharing a ``Work-item: <system>:<id>`` trailer form
  a group; commits without a trailer go to a synthetic ``untracked`` group.
- ``day``: commits grouped by author date (UTC calendar day).
- ``auto``: work-item grouping, unless no commit at all carries a trailer,
  in which case the whole set is grouped by day. The two strategies are
  never mixed within one run.

Groups are ordered by descending key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum

from devledger.core.errors import UserError
from devledger.core.git.models import Commit

UNTRACKED_KEY = "untracked"

_WORK_ITEM_TRAILER_RE = re.compile(r"^work-item:\s*(\S+:\S+)\s*$", re.IGNORECASE)
_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class GroupStrategy(str, Enum):
    """How pending commits are partitioned into entries."""

    AUTO = "auto"
    DAY = "day"
    WORK_ITEM = "work-item"

    @classmethod
    def parse(cls, value: str | GroupStrategy) -> GroupStrategy:
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise UserError(f"unknown grouping strategy {value!r}; use one of {choices}") from None


@dataclass
class CommitGroup:
    """A set of commits documented by a single entry.

    Attributes:
        key: Work-item ``system:id``, ``YYYY-MM-DD``, or ``untracked``
        commits: Commits in this group, newest first
    """

    key: str
    commits: list[Commit] = field(default_factory=list)

    @property
    def anchor(self) -> str:
        return self.commits[0].sha

    @property
    def shas(self) -> list[str]:
        return [c.sha for c in self.commits]

    @property
    def is_work_item(self) -> bool:
        return is_work_item_key(self.key)


def extract_work_item_trailer(body: str) -> str | None:
    """First ``Work-item: system:id`` trailer value in a commit body."""
    for line in body.splitlines():
        match = _WORK_ITEM_TRAILER_RE.match(line.strip())
        if match:
            return match.group(1)
    return None


def is_work_item_key(key: str) -> bool:
    """Whether a group key names a work item (rather than a day or ``untracked``)."""
    if key == UNTRACKED_KEY or _DAY_KEY_RE.match(key):
        return False
    return ":" in key


def group_commits(
    commits: list[Commit], strategy: GroupStrategy | str = GroupStrategy.AUTO
) -> list[CommitGroup]:
    """
    Partition commits into groups.

    Args:
        commits: Commits to group, newest first
        strategy: Grouping strategy (auto, day, work-item)

    Returns:
        Groups sorted by descending key; commit order inside a group
        follows the input order.
    """
    strategy = GroupStrategy.parse(strategy)
    if strategy is GroupStrategy.DAY:
        return group_by_day(commits)
    if strategy is GroupStrategy.WORK_ITEM:
        return group_by_work_item(commits)

    if any(extract_work_item_trailer(c.body) for c in commits):
        return group_by_work_item(commits)
    return group_by_day(commits)


def group_by_work_item(commits: list[Commit]) -> list[CommitGroup]:
    groups: dict[str, list[Commit]] = {}
    for commit in commits:
        key = extract_work_item_trailer(commit.body) or UNTRACKED_KEY
        groups.setdefault(key, []).append(commit)
    return _sorted_groups(groups)


def group_by_day(commits: list[Commit]) -> list[CommitGroup]:
    groups: dict[str, list[Commit]] = {}
    for commit in commits:
        key = commit.date.astimezone(timezone.utc).strftime("%Y-%m-%d")
        groups.setdefault(key, []).append(commit)
    return _sorted_groups(groups)


def _sorted_groups(groups: dict[str, list[Commit]]) -> list[CommitGroup]:
    return [CommitGroup(key=key, commits=groups[key]) for key in sorted(groups, reverse=True)]
