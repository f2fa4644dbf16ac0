"""
Read-only git facade used by the ledger.

The ledger never walks history itself. Everything it needs from version
control goes through the GitAdapter protocol, which GitRepo implements by
shelling out to the ``git`` binary. Tests substitute an in-memory adapter.

GitRepo also exposes the handful of write operations the notes backend and
the file backend need (``git notes``, ``git add``); they are not part of the
read-only GitAdapter contract.
"""

from __future__ import annotations

import logging
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from devledger.core.errors import LedgerSystemError
from devledger.core.git.models import Commit, Diffstat

logger = logging.getLogger(__name__)

# SHA of git's empty tree object, used when diffing from a root commit.
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

# Unit and record separators keep commit bodies with arbitrary text parseable.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%h", "%s", "%b", "%an", "%ae", "%at", "%ct"]) + _RECORD_SEP

_SHORTSTAT_RE = re.compile(
    r"(\d+)\s+files?\s+changed"
    r"(?:,\s+(\d+)\s+insertions?\(\+\))?"
    r"(?:,\s+(\d+)\s+deletions?\(-\))?"
)


class GitError(LedgerSystemError):
    """Exception raised when a git operation fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(f"{message}: {stderr}" if stderr else message)
        self.command = command
        self.stderr = stderr


@runtime_checkable
class GitAdapter(Protocol):
    """Version-control operations consumed by the ledger."""

    def head(self) -> str:
        """Full SHA of HEAD."""
        ...

    def resolve_commit(self, ref: str) -> str | None:
        """Full SHA of the commit ``ref`` names, or None if it names none (or several)."""
        ...

    def log(self, from_ref: str, to_ref: str) -> list[Commit]:
        """Commits in ``from_ref..to_ref`` (from exclusive, to inclusive), newest first."""
        ...

    def commits_reachable_from(self, ref: str) -> list[Commit]:
        """All commits reachable from ``ref``, newest first."""
        ...

    def get_diffstat(self, from_ref: str, to_ref: str) -> Diffstat:
        """Cumulative change statistics between two refs."""
        ...

    def commit_files(self, sha: str) -> list[str]:
        """Paths touched by a single commit."""
        ...

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Whether ``ancestor`` is reachable from ``descendant``."""
        ...


class GitRepo:
    """
    GitAdapter backed by the ``git`` command line.

    Example:
        >>> repo = GitRepo(Path("."))
        >>> head = repo.head()
        >>> commits = repo.log(f"{head}~3", head)
    """

    def __init__(self, project_dir: Path | None = None, timeout: int = 60) -> None:
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.timeout = timeout

    def _run_git(
        self,
        args: list[str],
        *,
        check: bool = True,
        input_data: str | None = None,
    ) -> str:
        """
        Run a git command and return its stdout.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.
            input_data: Optional stdin data to pass to the command.

        Returns:
            Command stdout as string (stripped).

        Raises:
            GitError: If the command fails and check=True.
        """
        cmd = ["git"] + args

        logger.debug("Running git command: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                # Notes and commit messages may hold arbitrary bytes
                errors="replace",
                timeout=self.timeout,
                input=input_data,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found: ensure git is installed and in PATH", command=cmd) from e

        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise GitError(f"git command failed: {' '.join(cmd)}", command=cmd, stderr=stderr)

        return result.stdout.strip() if result.stdout else ""

    # ------------------------------------------------------------------
    # Repository state
    # ------------------------------------------------------------------

    def is_repo(self) -> bool:
        """Check if project_dir is inside a git repository."""
        try:
            self._run_git(["rev-parse", "--git-dir"])
            return True
        except GitError:
            return False

    def repo_root(self) -> Path:
        """Top-level directory of the working copy."""
        return Path(self._run_git(["rev-parse", "--show-toplevel"]))

    def head(self) -> str:
        try:
            return self._run_git(["rev-parse", "HEAD"])
        except GitError as e:
            raise GitError("failed to get HEAD", command=e.command, stderr=e.stderr) from e

    def current_branch(self) -> str | None:
        """Checked-out branch name, or None with a detached HEAD."""
        return self._run_git(["symbolic-ref", "--short", "-q", "HEAD"], check=False) or None

    def resolve_commit(self, ref: str) -> str | None:
        if not ref:
            return None
        try:
            return self._run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"]) or None
        except GitError:
            return None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self._try(["merge-base", "--is-ancestor", ancestor, descendant])

    def _try(self, args: list[str]) -> bool:
        try:
            self._run_git(args)
            return True
        except GitError:
            return False

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def log(self, from_ref: str, to_ref: str) -> list[Commit]:
        range_spec = f"{from_ref}..{to_ref}"
        out = self._run_git(["log", "--topo-order", f"--pretty=format:{_LOG_FORMAT}", range_spec])
        return parse_log_output(out)

    def commits_reachable_from(self, ref: str) -> list[Commit]:
        out = self._run_git(["log", "--topo-order", f"--pretty=format:{_LOG_FORMAT}", ref])
        return parse_log_output(out)

    def get_diffstat(self, from_ref: str, to_ref: str) -> Diffstat:
        """
        Change statistics for ``from_ref..to_ref``.

        A ``from_ref`` that does not resolve (e.g. ``<root>^``) is replaced
        by the empty tree so the root commit's own changes are counted.
        """
        resolved_from = from_ref if from_ref and self._try(
            ["rev-parse", "--verify", "--quiet", from_ref]
        ) else EMPTY_TREE_SHA
        out = self._run_git(["diff", "--shortstat", resolved_from, to_ref])
        return parse_shortstat(out)

    def commit_files(self, sha: str) -> list[str]:
        out = self._run_git(["diff-tree", "--no-commit-id", "--name-only", "-r", "--root", sha])
        return [line for line in out.splitlines() if line.strip()]

    # ------------------------------------------------------------------
    # Writes used by storage backends
    # ------------------------------------------------------------------

    def add(self, path: Path) -> None:
        """Stage a file."""
        self._run_git(["add", "--", str(path)])

    def read_note(self, commit: str, notes_ref: str) -> str | None:
        """Note attached to ``commit`` under ``notes_ref``, or None if there is none."""
        try:
            return self._run_git(["notes", f"--ref={notes_ref}", "show", commit])
        except GitError as e:
            stderr = e.stderr.lower()
            if "no note found" in stderr or "no such object" in stderr:
                return None
            raise

    def write_note(self, commit: str, content: str, notes_ref: str, force: bool = False) -> None:
        args = ["notes", f"--ref={notes_ref}", "add"]
        if force:
            args.append("-f")
        args += ["-F", "-", commit]
        self._run_git(args, input_data=content)

    def remove_note(self, commit: str, notes_ref: str) -> None:
        self._run_git(["notes", f"--ref={notes_ref}", "remove", "--ignore-missing", commit])

    def list_noted_commits(self, notes_ref: str) -> list[str]:
        """Commits carrying a note under ``notes_ref``; empty if the ref does not exist."""
        if not self._try(["show-ref", "--verify", "--quiet", notes_ref]):
            return []
        out = self._run_git(["notes", f"--ref={notes_ref}", "list"])
        commits = []
        for line in out.splitlines():
            # "<note-blob-sha> <commit-sha>"
            parts = line.split()
            if len(parts) >= 2:
                commits.append(parts[1])
        return commits

    def notes_fetch_configured(self, remote: str, notes_ref: str) -> bool:
        out = self._run_git(["config", "--get-all", f"remote.{remote}.fetch"], check=False)
        return any(notes_ref in spec for spec in out.splitlines())

    def configure_notes_fetch(self, remote: str, notes_ref: str) -> None:
        """Add a fetch refspec for ``notes_ref`` to ``remote``; no-op if present."""
        if self.notes_fetch_configured(remote, notes_ref):
            return
        self._run_git(["config", "--add", f"remote.{remote}.fetch", f"+{notes_ref}:{notes_ref}"])

    def push_notes(self, remote: str, notes_ref: str) -> None:
        self._run_git(["push", remote, notes_ref])

    def fetch_notes(self, remote: str, notes_ref: str) -> None:
        self._run_git(["fetch", remote, f"{notes_ref}:{notes_ref}"])


def parse_log_output(out: str) -> list[Commit]:
    """Parse ``git log`` output produced with the adapter's record format."""
    commits: list[Commit] = []
    for record in out.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        fields = record.split(_FIELD_SEP)
        if len(fields) < 8:
            logger.warning("Skipping malformed git log record")
            continue
        commits.append(
            Commit(
                sha=fields[0].strip(),
                short_sha=fields[1].strip(),
                subject=fields[2].strip(),
                body=fields[3].strip(),
                author=fields[4].strip(),
                author_email=fields[5].strip(),
                date=_from_unix(fields[6]),
                commit_date=_from_unix(fields[7]),
            )
        )
    return commits


def _from_unix(value: str) -> datetime:
    try:
        return datetime.fromtimestamp(int(value.strip()), tz=timezone.utc)
    except ValueError:
        return datetime.fromtimestamp(0, tz=timezone.utc)


def parse_shortstat(out: str) -> Diffstat:
    """Parse the summary line of ``git diff --shortstat`` / ``--stat``."""
    lines = [line.strip() for line in out.splitlines() if line.strip()]
    if not lines:
        return Diffstat()
    match = _SHORTSTAT_RE.search(lines[-1])
    if match is None:
        return Diffstat()
    return Diffstat(
        files=int(match.group(1) or 0),
        insertions=int(match.group(2) or 0),
        deletions=int(match.group(3) or 0),
    )
