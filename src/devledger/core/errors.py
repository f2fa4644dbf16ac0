"""
Error taxonomy for devledger.

Every error raised by the core carries an exit code so that any interface
(CLI, scripts) can report it consistently:

    1 = user error (bad arguments, missing fields, entry not found)
    2 = system error (git failed, storage I/O failed, generator failed)
    3 = conflict (entry already exists)

A stale anchor is not an error. It is reported through
``PendingCommits.stale_anchor`` alongside a best-effort result.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for ledger operations."""

    SUCCESS = 0
    USER_ERROR = 1
    SYSTEM_ERROR = 2
    CONFLICT = 3


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    exit_code: ExitCode = ExitCode.USER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UserError(LedgerError):
    """Invalid input: bad filter arguments, malformed ranges, missing fields."""

    exit_code = ExitCode.USER_ERROR


class EntryNotFoundError(UserError):
    """No entry exists for the requested ID."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"entry not found: {entry_id}")
        self.entry_id = entry_id


class EntryValidationError(UserError):
    """An entry is missing one or more required fields."""

    def __init__(self, fields: list[str], message: str = "missing required fields") -> None:
        detail = f"{message}: {', '.join(fields)}" if fields else message
        super().__init__(detail)
        self.fields = fields


class LedgerSystemError(LedgerError):
    """Version control unavailable, storage I/O failure, or generator failure."""

    exit_code = ExitCode.SYSTEM_ERROR


class ConflictError(LedgerError):
    """An entry with the same ID already exists and overwrite was not allowed."""

    exit_code = ExitCode.CONFLICT


class NotLedgerRecordError(UserError):
    """Valid JSON that does not carry the ledger schema."""


def exit_code_for(error: BaseException | None) -> int:
    """Map an exception to a process exit code.

    Untyped exceptions count as user errors.
    """
    if error is None:
        return ExitCode.SUCCESS
    if isinstance(error, LedgerError):
        return error.exit_code
    return ExitCode.USER_ERROR
