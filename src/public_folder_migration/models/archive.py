"""Pydantic models for rows of the local archive file."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from public_folder_migration.models.base import ArchiveRowModel
from public_folder_migration.models.types import FolderKind


class ArchiveFolderRow(ArchiveRowModel):
    """Row model for the folders table."""

    id: int = Field(ge=1)
    parent_id: int | None = Field(default=None, ge=1)
    name: str
    kind: FolderKind
    container_class: str = Field(min_length=1)
    created_at: datetime


class ArchiveItemRow(ArchiveRowModel):
    """Row model for the items table.

    Items with ``folder_id`` set to ``None`` are staged duplicates that have not
    been relocated into a folder yet.
    """

    id: int = Field(ge=1)
    folder_id: int | None = Field(default=None, ge=1)
    source_id: str | None = None
    item_class: str | None = None
    label: str = ""

    sha256: str = Field(min_length=1)
    size_bytes: int = Field(ge=0)

    created_at: datetime
    updated_at: datetime
