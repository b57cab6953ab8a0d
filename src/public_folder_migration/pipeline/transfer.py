"""Single-item transfer from a source folder into the archive."""

from __future__ import annotations

import logging
import sqlite3

from public_folder_migration.models.archive import ArchiveFolderRow, ArchiveItemRow
from public_folder_migration.models.types import TransferError, TransferResult
from public_folder_migration.pipeline.errors import (
    DuplicateError,
    LabelReconcileError,
    RelocateError,
)
from public_folder_migration.pipeline.protocols import ItemTransport, SourceItem
from public_folder_migration.storage.archive_db import ArchiveDb

logger = logging.getLogger(__name__)


class ArchiveItemTransport:
    """Copies source items into an ``ArchiveDb``.

    Duplicating stages the item's MIME content in the archive without a folder;
    relocating attaches the staged row to its destination folder. A staged row
    whose relocation fails stays behind as an orphan.
    """

    def __init__(self, *, archive: ArchiveDb) -> None:
        self._archive = archive

    def duplicate(self, item: SourceItem) -> ArchiveItemRow:
        """Stage a copy of ``item`` in the archive."""
        mime = item.mime_content()
        try:
            return self._archive.stage_item(
                source_id=item.item_id,
                item_class=item.item_class,
                mime=mime,
            )
        except sqlite3.Error as exc:
            raise DuplicateError(f"Cannot stage item {item.item_id}: {exc}") from exc

    def relocate(self, duplicate: ArchiveItemRow, dest_folder: ArchiveFolderRow) -> ArchiveItemRow:
        """Move a staged copy into ``dest_folder``."""
        try:
            return self._archive.relocate_item(item_id=duplicate.id, folder_id=dest_folder.id)
        except sqlite3.Error as exc:
            raise RelocateError(
                f"Cannot relocate item id={duplicate.id} to folder id={dest_folder.id}: {exc}",
            ) from exc

    def read_label(self, dest_item: ArchiveItemRow) -> str:
        return dest_item.label

    def write_label(self, dest_item: ArchiveItemRow, label: str) -> None:
        try:
            self._archive.set_item_label(item_id=dest_item.id, label=label)
        except (LookupError, sqlite3.Error) as exc:
            raise LabelReconcileError(str(exc)) from exc


def transfer_item(
    item: SourceItem,
    dest_folder: ArchiveFolderRow,
    *,
    transport: ItemTransport,
) -> TransferResult:
    """Copy one item into ``dest_folder``, leaving the source untouched.

    After relocation the destination label is compared with the source label and
    restored if the transfer rewrote it. A failed restore does not fail the
    transfer.

    Args:
        item: Source item.
        dest_folder: Archive folder receiving the copy.
        transport: Transfer primitives.

    Returns:
        The transfer outcome; ``ok`` is True once the item exists in the destination.
    """
    try:
        duplicate = transport.duplicate(item)
    except DuplicateError as exc:
        logger.warning(
            "Duplicate failed for item %s: %s",
            item.item_id,
            exc,
            extra={"item_id": item.item_id, "error_kind": TransferError.duplicate_failed.value},
        )
        return TransferResult(ok=False, error=TransferError.duplicate_failed)

    try:
        relocated = transport.relocate(duplicate, dest_folder)
    except RelocateError as exc:
        logger.warning(
            "Relocate failed for item %s into folder id=%s: %s",
            item.item_id,
            dest_folder.id,
            exc,
            extra={"item_id": item.item_id, "error_kind": TransferError.relocate_failed.value},
        )
        return TransferResult(ok=False, error=TransferError.relocate_failed)

    reconciled = False
    try:
        if transport.read_label(relocated) != item.label:
            transport.write_label(relocated, item.label)
            reconciled = True
    except LabelReconcileError as exc:
        logger.debug("Label reconcile failed for item %s: %s", item.item_id, exc)

    return TransferResult(ok=True, label_reconciled=reconciled)
