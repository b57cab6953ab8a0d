"""Validated domain models (Pydantic)."""

from __future__ import annotations

from public_folder_migration.models.archive import ArchiveFolderRow, ArchiveItemRow
from public_folder_migration.models.types import (
    ContentType,
    ExportSummary,
    FolderKind,
    TransferError,
    TransferRecord,
    TransferResult,
)

__all__ = [
    "ArchiveFolderRow",
    "ArchiveItemRow",
    "ContentType",
    "ExportSummary",
    "FolderKind",
    "TransferError",
    "TransferRecord",
    "TransferResult",
]
