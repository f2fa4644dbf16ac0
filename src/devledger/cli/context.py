"""Shared helpers for opening the ledger from CLI commands."""

import typer

from devledger.cli.errors import ExitCode, print_not_git_repo_error
from devledger.core.config import LedgerConfig, load_config
from devledger.core.git import GitRepo
from devledger.core.ledger import Ledger


def open_ledger() -> tuple[Ledger, LedgerConfig]:
    """
    Open the ledger for the current working copy.

    Exits with a system error code when run outside a git repository.
    """
    git = GitRepo()
    if not git.is_repo():
        print_not_git_repo_error()
        raise typer.Exit(ExitCode.SYSTEM_ERROR)
    config = load_config(git.repo_root())
    return Ledger.open(git.repo_root(), config), config
