"""
Shared test helpers.

Commit and entry factories, an in-memory GitAdapter and a canned rationale
generator. Fixtures that wrap these live in conftest.py.
"""

from __future__ import annotations

import subprocess
import threading
import time
from datetime import datetime, timedelta, timezone

from devledger.core.catchup import GeneratorError
from devledger.core.git import Commit, Diffstat, GitError
from devledger.core.ledger import Entry, Summary, Workset, generate_id

BASE_TIME = datetime(2026, 1, 19, 10, 0, 0, tzinfo=timezone.utc)

GOOD_OUTPUT = "WHAT: Added caching\nWHY: Lookups were slow\nHOW: LRU in front of the store\n"


def run_git(repo, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


# ==============================================================================
# Commits and entries
# ==============================================================================


def sha_for(n: int) -> str:
    """Deterministic 40-char hex SHA for commit number n."""
    return f"{n:04x}" * 10


def make_commit_model(
    n: int,
    subject: str | None = None,
    body: str = "",
    date: datetime | None = None,
) -> Commit:
    when = date or BASE_TIME + timedelta(minutes=n)
    return Commit(
        sha=sha_for(n),
        short_sha=sha_for(n)[:7],
        subject=subject if subject is not None else f"Commit {n}",
        body=body,
        author="Test User",
        author_email="test@example.com",
        date=when,
        commit_date=when,
    )


def make_entry(
    anchor: str,
    commits: list[str] | None = None,
    created_at: datetime | None = None,
    tags: list[str] | None = None,
    what: str = "Did the thing",
) -> Entry:
    created = created_at or BASE_TIME
    commits = commits or [anchor]
    return Entry(
        id=generate_id(anchor, created),
        created_at=created,
        updated_at=created,
        workset=Workset(anchor_commit=anchor, commits=commits),
        summary=Summary(what=what, why="Because", how="Carefully"),
        tags=tags or [],
    )


# ==============================================================================
# In-memory git
# ==============================================================================


class FakeGit:
    """
    In-memory GitAdapter over a linear or branching history.

    Commits are registered oldest first with their parents; HEAD points at
    the last commit added unless set explicitly.
    """

    def __init__(self) -> None:
        self.commits: dict[str, Commit] = {}
        self.parents: dict[str, list[str]] = {}
        self.head_sha: str | None = None
        self.diffstat_calls: list[tuple[str, str]] = []
        self.fail_diffstat = False

    def add(self, commit: Commit, parents: list[str] | None = None) -> Commit:
        if parents is None:
            parents = [self.head_sha] if self.head_sha else []
        self.commits[commit.sha] = commit
        self.parents[commit.sha] = parents
        self.head_sha = commit.sha
        return commit

    def add_linear(self, count: int, start: int = 1) -> list[Commit]:
        """Append ``count`` commits; returns them oldest first."""
        return [self.add(make_commit_model(n)) for n in range(start, start + count)]

    def _resolve(self, ref: str) -> str:
        if ref == "HEAD" and self.head_sha:
            return self.head_sha
        if ref in self.commits:
            return ref
        matches = [sha for sha in self.commits if sha.startswith(ref)]
        if len(matches) == 1:
            return matches[0]
        raise GitError(f"unknown revision {ref}", stderr=f"fatal: bad revision '{ref}'")

    def _reachable(self, sha: str) -> set[str]:
        seen: set[str] = set()
        stack = [sha]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.parents.get(current, []))
        return seen

    def _ordered(self, shas: set[str]) -> list[Commit]:
        return sorted(
            (self.commits[s] for s in shas), key=lambda c: c.ordering_date, reverse=True
        )

    # GitAdapter
    def head(self) -> str:
        if self.head_sha is None:
            raise GitError("failed to get HEAD")
        return self.head_sha

    def resolve_commit(self, ref: str) -> str | None:
        if not ref:
            return None
        try:
            return self._resolve(ref)
        except GitError:
            return None

    def log(self, from_ref: str, to_ref: str) -> list[Commit]:
        start = self._resolve(from_ref)
        end = self._resolve(to_ref)
        return self._ordered(self._reachable(end) - self._reachable(start))

    def commits_reachable_from(self, ref: str) -> list[Commit]:
        return self._ordered(self._reachable(self._resolve(ref)))

    def get_diffstat(self, from_ref: str, to_ref: str) -> Diffstat:
        self.diffstat_calls.append((from_ref, to_ref))
        if self.fail_diffstat:
            raise GitError("diff failed")
        return Diffstat(files=1, insertions=2, deletions=3)

    def commit_files(self, sha: str) -> list[str]:
        return []

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        if ancestor not in self.commits:
            return False
        return ancestor in self._reachable(self._resolve(descendant))


# ==============================================================================
# Rationale generation
# ==============================================================================


class FakeGenerator:
    """Generator returning canned text; fails for chosen group keys."""

    def __init__(self, fail_keys: set[str] | None = None, delay: float = 0.0) -> None:
        self.fail_keys = fail_keys or set()
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def complete(self, prompt: str, system_prompt: str) -> str:
        key = prompt.splitlines()[0].removeprefix("Group: ")
        with self._lock:
            self.calls.append(key)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if key in self.fail_keys:
                raise GeneratorError(f"model refused {key}")
            return GOOD_OUTPUT
        finally:
            with self._lock:
                self.active -= 1
