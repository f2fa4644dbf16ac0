"""
Standardized error output and exit codes for the devledger CLI.

Core errors carry their own exit code (1 user, 2 system, 3 conflict); the
CLI prints them with rich and exits with that code.
"""

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from devledger.core.errors import ExitCode, LedgerError, exit_code_for
from devledger.core.git.repo import GitError

console = Console()

__all__ = ["ExitCode", "console", "exit_with_error", "print_error", "print_not_git_repo_error"]


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No pending commits",
        ...     solution="devledger pending",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_not_git_repo_error() -> None:
    """Print error when not in a git repository."""
    print_error(
        "Not a git repository",
        reason="devledger records entries against git history",
        solution="git init  # or cd to your project root",
    )


def exit_with_error(error: Exception) -> NoReturn:
    """Print a core error and exit with its code."""
    if isinstance(error, GitError):
        print_error(error.message, reason=error.stderr or None)
    elif isinstance(error, LedgerError):
        print_error(error.message)
    else:
        print_error(str(error))
    raise typer.Exit(exit_code_for(error))
