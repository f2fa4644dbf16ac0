"""
Git data models.

Commit and Diffstat are the objective evidence the ledger attaches to
entries. They are produced by the git adapter and never persisted on their
own (diffstat is copied into an entry's workset).
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class Diffstat(BaseModel):
    """File change statistics for a range of commits."""

    files: int = Field(default=0, ge=0, description="Number of files changed")
    insertions: int = Field(default=0, ge=0, description="Number of lines inserted")
    deletions: int = Field(default=0, ge=0, description="Number of lines deleted")

    @property
    def is_empty(self) -> bool:
        return self.files == 0 and self.insertions == 0 and self.deletions == 0


class Commit(BaseModel):
    """A git commit with its metadata.

    Example:
        >>> commit = Commit(sha="8f2c1a9d...", subject="Fix auth bug")
        >>> commit.short
        '8f2c1a9'
    """

    sha: str = Field(..., min_length=4, description="Full commit SHA")
    short_sha: str = Field(default="", description="Abbreviated SHA")
    subject: str = Field(default="", description="First line of the commit message")
    body: str = Field(default="", description="Rest of the commit message")
    author: str = Field(default="", description="Author name")
    author_email: str = Field(default="", description="Author email")
    date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Author date (UTC)",
    )
    commit_date: datetime | None = Field(
        default=None, description="Committer date (UTC); used for ordering"
    )

    @field_validator("sha")
    @classmethod
    def validate_sha(cls, v: str) -> str:
        """Commit SHAs are lowercase hex."""
        v = v.strip().lower()
        if not all(c in "0123456789abcdef" for c in v):
            raise ValueError("Commit SHA must contain only hexadecimal characters")
        return v

    @property
    def short(self) -> str:
        """Short SHA as reported by git, or the first 7 characters."""
        return self.short_sha or self.sha[:7]

    @property
    def ordering_date(self) -> datetime:
        return self.commit_date or self.date


def sort_newest_first(commits: list[Commit]) -> list[Commit]:
    """Sort commits newest first by committer date.

    The sort is stable, so commits sharing a timestamp keep the order git
    reported them in (topological order for ``git log --topo-order``).
    """
    return sorted(commits, key=lambda c: c.ordering_date, reverse=True)
