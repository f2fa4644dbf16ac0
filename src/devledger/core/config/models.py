"""
Configuration data models for devledger.

These models define the structure of .devledger.json and
~/.config/devledger/config.json files, with validation via Pydantic.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatchupConfig(BaseModel):
    """
    Settings for LLM-assisted catch-up of undocumented history.
    """

    parallel: int = Field(
        default=5,
        ge=1,
        description="Maximum number of groups documented concurrently",
    )
    model: str = Field(
        default="haiku",
        min_length=1,
        description="Model passed to the rationale generator",
    )
    timeout_seconds: int = Field(
        default=120,
        ge=1,
        description="Per-call timeout for the rationale generator",
    )
    strategy: Literal["auto", "day", "work-item"] = Field(
        default="auto",
        description="How pending commits are grouped into entries",
    )


class LedgerConfig(BaseModel):
    """
    Top-level devledger configuration.

    Example:
        >>> config = LedgerConfig(backend="notes")
        >>> config.notes_ref
        'refs/notes/devledger'
        >>> config.catchup.parallel
        5
    """

    model_config = ConfigDict(extra="ignore")

    backend: Literal["files", "notes"] = Field(
        default="files",
        description="Entry storage: JSON files in the working tree or git notes",
    )
    ledger_dir: str = Field(
        default=".devledger",
        min_length=1,
        description="Directory (relative to the repository root) for the files backend",
    )
    notes_ref: str = Field(
        default="refs/notes/devledger",
        description="Notes ref used by the notes backend",
    )
    remote: str = Field(default="origin", min_length=1, description="Remote for notes sync")
    stage_files: bool = Field(
        default=False,
        description="Run 'git add' on entry files written by the files backend",
    )
    catchup: CatchupConfig = Field(default_factory=CatchupConfig)

    @field_validator("notes_ref")
    @classmethod
    def validate_notes_ref(cls, v: str) -> str:
        if not v.startswith("refs/notes/"):
            raise ValueError(f"notes_ref must live under refs/notes/, got {v!r}")
        return v
