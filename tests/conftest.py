"""
Pytest configuration and shared fixtures.

Provides throwaway git repositories, an in-memory GitAdapter for resolver
and ledger logic, and ledgers over each storage backend. Plain factories
live in helpers.py.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path

import pytest

from devledger.core.config import clear_cache
from devledger.core.git import GitRepo
from devledger.core.ledger import FileBackend, Ledger, NotesBackend
from helpers import BASE_TIME, FakeGit, run_git


# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config and DEVLEDGER_* variables out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "DEVLEDGER_BACKEND",
        "DEVLEDGER_DIR",
        "DEVLEDGER_REMOTE",
        "DEVLEDGER_PARALLEL",
        "DEVLEDGER_MODEL",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Real git repositories
# ==============================================================================


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for testing."""
    repo = tmp_path / "repo"
    repo.mkdir()

    subprocess.run(["git", "init"], cwd=repo, capture_output=True, check=True)
    run_git(repo, "config", "user.email", "test@example.com")
    run_git(repo, "config", "user.name", "Test User")
    run_git(repo, "config", "commit.gpgsign", "false")

    return repo


@pytest.fixture
def make_commit(git_repo: Path) -> Callable[..., str]:
    """
    Factory committing a file change; returns the new commit SHA.

    Example:
        sha = make_commit("Add parser", body="Work-item: jira:P-1")
    """
    counter = {"n": 0}

    def _make(subject: str, body: str = "", filename: str | None = None, days_ago: int = 0) -> str:
        counter["n"] += 1
        name = filename or f"file{counter['n']}.txt"
        path = git_repo / name
        path.write_text(f"{subject}\n{counter['n']}\n")
        run_git(git_repo, "add", name)
        message = subject if not body else f"{subject}\n\n{body}"
        stamp = BASE_TIME - timedelta(days=days_ago) + timedelta(minutes=counter["n"])
        env_date = stamp.strftime("%Y-%m-%dT%H:%M:%S+0000")
        subprocess.run(
            ["git", "commit", "-m", message],
            cwd=git_repo,
            capture_output=True,
            check=True,
            env={
                **os.environ,
                "GIT_AUTHOR_DATE": env_date,
                "GIT_COMMITTER_DATE": env_date,
            },
        )
        return run_git(git_repo, "rev-parse", "HEAD")

    return _make


@pytest.fixture
def git_repo_with_commits(git_repo: Path, make_commit) -> tuple[Path, list[str]]:
    """A repository with three commits; SHAs are returned oldest first."""
    shas = [make_commit("First"), make_commit("Second"), make_commit("Third")]
    return git_repo, shas


# ==============================================================================
# Ledgers
# ==============================================================================


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def file_ledger(tmp_path: Path, fake_git: FakeGit) -> Ledger:
    """Ledger over FakeGit with JSON-file storage."""
    return Ledger(fake_git, FileBackend(tmp_path / "ledger"))


@pytest.fixture
def history(git_repo: Path, make_commit) -> list[str]:
    """Five real commits, one per file; SHAs oldest first."""
    return [make_commit(f"Change {n}") for n in range(1, 6)]


@pytest.fixture(params=["files", "notes"])
def ledger(request, git_repo: Path, history: list[str]) -> Ledger:
    """Ledger over the ``history`` repository, once per storage backend."""
    git = GitRepo(git_repo)
    if request.param == "files":
        return Ledger(git, FileBackend(git_repo / ".devledger", git=git))
    return Ledger(git, NotesBackend(git))
