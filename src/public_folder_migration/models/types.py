"""Shared enums and lightweight Pydantic models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Self

from pydantic import Field, model_validator

from public_folder_migration.models.base import AppModel, RecordModel

UNKNOWN_COUNT = -1


class ContentType(StrEnum):
    """Declared content type of a source public folder."""

    mail = "Mail"
    calendar = "Calendar"
    contact = "Contact"
    task = "Task"
    unknown = "Unknown"


_CONTAINER_CLASS_PREFIXES: tuple[tuple[str, ContentType], ...] = (
    ("ipf.note", ContentType.mail),
    ("ipf.appointment", ContentType.calendar),
    ("ipf.contact", ContentType.contact),
    ("ipf.task", ContentType.task),
)


def content_type_from_container_class(container_class: str | None) -> ContentType:
    """Map an EWS/MAPI container class (``IPF.*``) to a content type.

    Args:
        container_class: Raw container class, e.g. ``IPF.Appointment``.

    Returns:
        The matching content type, or ``ContentType.unknown``.
    """
    if not container_class:
        return ContentType.unknown
    lowered = container_class.strip().lower()
    for prefix, content_type in _CONTAINER_CLASS_PREFIXES:
        if lowered == prefix or lowered.startswith(prefix + "."):
            return content_type
    return ContentType.unknown


class FolderKind(StrEnum):
    """Concrete folder kinds created in the local archive."""

    mail = "mail"
    calendar = "calendar"
    contact = "contact"
    task = "task"
    generic = "generic"

    @property
    def container_class(self) -> str:
        """Container class written to the archive for this kind."""
        return _KIND_CONTAINER_CLASS[self]


_KIND_CONTAINER_CLASS: dict[FolderKind, str] = {
    FolderKind.mail: "IPF.Note",
    FolderKind.calendar: "IPF.Appointment",
    FolderKind.contact: "IPF.Contact",
    FolderKind.task: "IPF.Task",
    FolderKind.generic: "IPF.Note",
}


class TransferError(StrEnum):
    """Per-item transfer failure kinds."""

    duplicate_failed = "duplicate_failed"
    relocate_failed = "relocate_failed"


@dataclass(frozen=True)
class TransferResult:
    """Outcome of transferring one item."""

    ok: bool
    error: TransferError | None = None
    label_reconciled: bool = False


class TransferRecord(RecordModel):
    """Per-folder statistics row of one export run."""

    folder_path: str = Field(min_length=1)
    folder_name: str
    folder_id: str
    folder_type: ContentType
    source_item_count: int = Field(ge=UNKNOWN_COUNT)
    exported_item_count: int = Field(default=0, ge=0)
    failed_item_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _counts_within_total(self) -> Self:
        """Ensure exported + failed never exceeds a known source count."""
        if self.source_item_count == UNKNOWN_COUNT:
            return self
        if self.exported_item_count + self.failed_item_count > self.source_item_count:
            msg = (
                f"exported ({self.exported_item_count}) + failed ({self.failed_item_count}) "
                f"exceeds source count ({self.source_item_count}) for {self.folder_path}"
            )
            raise ValueError(msg)
        return self


class ExportSummary(AppModel):
    """Summarized export run emitted next to the CSV report."""

    created_at: datetime
    archive_path: str
    report_path: str
    start_path: str
    dry_run: bool
    aborted: bool = False
    folders: int = Field(default=0, ge=0)
    source_items: int = Field(default=0, ge=0)
    exported_items: int = Field(default=0, ge=0)
    failed_items: int = Field(default=0, ge=0)
    unknown_count_folders: int = Field(default=0, ge=0)
    orphaned_items: int = Field(default=0, ge=0)
