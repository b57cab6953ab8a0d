"""Base Pydantic models shared by records, summaries and archive rows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AppModel(BaseModel):
    """Base model with strict-ish, safe defaults."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
        validate_assignment=True,
    )


class RecordModel(AppModel):
    """Immutable model for values reported once a folder has been visited."""

    model_config = ConfigDict(frozen=True)


class ArchiveRowModel(AppModel):
    """Model for rows read back from the archive file.

    Folder names and item labels are stored exactly as mirrored, so strings are
    kept verbatim.
    """

    model_config = ConfigDict(str_strip_whitespace=False)
