"""
Ledger data models for devledger.

An Entry pairs objective git evidence (the Workset) with authored rationale
(the Summary). Entries are serialized as JSON records:

    {
      "schema": "devledger.entry/v1",
      "kind": "entry",
      "id": "dl_2026-01-19T10:04:05Z_8f2c1a",
      "created_at": "2026-01-19T10:04:05Z",
      "updated_at": "2026-01-19T10:04:05Z",
      "workset": {"anchor_commit": "...", "commits": ["..."], "range": "...",
                  "diffstat": {"files": 3, "insertions": 45, "deletions": 12}},
      "summary": {"what": "...", "why": "...", "how": "..."},
      "tags": ["security"],
      "work_items": [{"system": "jira", "id": "PROJ-1"}],
      "notes": "..."
    }
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devledger.core.errors import EntryValidationError, NotLedgerRecordError, UserError
from devledger.core.git.models import Diffstat

SCHEMA_VERSION = "devledger.entry/v1"
SCHEMA_PREFIX = "devledger.entry/"
KIND_ENTRY = "entry"

ID_PREFIX = "dl_"
SHORT_SHA_LENGTH = 6
ID_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_ID_DATE_RE = re.compile(r"^dl_(\d{4})-(\d{2})-(\d{2})T")


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (the ID's precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_id(anchor: str, timestamp: datetime) -> str:
    """
    Deterministic entry ID from an anchor commit and a creation instant.

    Format: ``dl_<YYYY-MM-DDTHH:MM:SSZ>_<first 6 chars of anchor>``. The
    timestamp is rendered in UTC with second precision, so lexicographic
    order of IDs approximates chronological order.

    Example:
        >>> generate_id("8f2c1a9d", datetime(2026, 1, 19, 10, 4, 5, tzinfo=timezone.utc))
        'dl_2026-01-19T10:04:05Z_8f2c1a'
    """
    stamp = _as_utc(timestamp).strftime(ID_TIMESTAMP_FORMAT)
    return f"{ID_PREFIX}{stamp}_{anchor[:SHORT_SHA_LENGTH]}"


def entry_date_parts(entry_id: str) -> tuple[str, str, str] | None:
    """(year, month, day) embedded in an entry ID, or None for unexpected formats."""
    match = _ID_DATE_RE.match(entry_id)
    if match is None:
        return None
    return match.group(1), match.group(2), match.group(3)


class WorkItem(BaseModel):
    """Reference to an external work tracker (e.g. jira:PROJ-123)."""

    system: str = Field(..., min_length=1, description="Tracker system (jira, linear, gh, ...)")
    id: str = Field(..., min_length=1, description="Item identifier within the system")

    def __str__(self) -> str:
        return f"{self.system}:{self.id}"


class Summary(BaseModel):
    """The what/why/how rationale for an entry."""

    what: str = ""
    why: str = ""
    how: str = ""


class Workset(BaseModel):
    """Git evidence attached to an entry.

    ``commits`` is ordered newest first and ``anchor_commit`` is normally
    ``commits[0]``.
    """

    anchor_commit: str = ""
    commits: list[str] = Field(default_factory=list)
    range: str = ""
    diffstat: Diffstat | None = None


class Entry(BaseModel):
    """A development ledger entry.

    Example:
        >>> entry = Entry(
        ...     workset=Workset(anchor_commit="8f2c1a9d", commits=["8f2c1a9d"]),
        ...     summary=Summary(what="Fix auth", why="Users locked out", how="Null check"),
        ...     tags=["security"],
        ... )
        >>> entry.missing_fields()
        ['id']
    """

    model_config = ConfigDict(populate_by_name=True)

    schema_: str = Field(default=SCHEMA_VERSION, alias="schema")
    kind: str = KIND_ENTRY
    id: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    workset: Workset = Field(default_factory=Workset)
    summary: Summary = Field(default_factory=Summary)
    tags: list[str] = Field(default_factory=list)
    work_items: list[WorkItem] = Field(default_factory=list)
    notes: str | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        """Timestamps are stored in UTC; naive values are taken as UTC."""
        return _as_utc(v)

    @property
    def anchor(self) -> str:
        return self.workset.anchor_commit

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty, in schema order."""
        missing = []
        if not self.schema_:
            missing.append("schema")
        if not self.kind:
            missing.append("kind")
        if not self.id:
            missing.append("id")
        if not self.workset.anchor_commit:
            missing.append("workset.anchor_commit")
        if not self.workset.commits:
            missing.append("workset.commits")
        if not self.summary.what:
            missing.append("summary.what")
        if not self.summary.why:
            missing.append("summary.why")
        if not self.summary.how:
            missing.append("summary.how")
        return missing

    def validate_required(self) -> None:
        """Raise EntryValidationError listing every missing required field."""
        missing = self.missing_fields()
        if missing:
            raise EntryValidationError(missing)

    def has_any_tag(self, tags: list[str]) -> bool:
        return any(tag in tags for tag in self.tags)

    def covers(self, sha: str) -> bool:
        return sha in self.workset.commits

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> Entry:
        """
        Decode an entry record.

        Raises:
            NotLedgerRecordError: Valid JSON without the ledger schema.
            UserError: Empty input, invalid JSON, or a malformed record.
        """
        if not data or not data.strip():
            raise UserError("empty JSON data")
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            raise UserError(f"parsing entry JSON: {e}") from e
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: object) -> Entry:
        if not isinstance(raw, dict):
            raise NotLedgerRecordError("not a ledger record: expected a JSON object")
        schema = raw.get("schema")
        if not isinstance(schema, str) or not schema.startswith(SCHEMA_PREFIX):
            raise NotLedgerRecordError(f"not a ledger record: schema {schema!r}")
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise UserError(f"parsing entry JSON: {e}") from e
