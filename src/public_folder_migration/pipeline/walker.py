"""Depth-first mirroring of a source folder tree into the archive."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from public_folder_migration.models.archive import ArchiveFolderRow
from public_folder_migration.models.types import UNKNOWN_COUNT, ContentType, TransferRecord
from public_folder_migration.pipeline.errors import EnumerationUnavailableError, FolderCreateError
from public_folder_migration.pipeline.folders import Destination, ensure_typed_folder
from public_folder_migration.pipeline.protocols import FolderNode, ItemTransport, SourceItem
from public_folder_migration.pipeline.transfer import transfer_item
from public_folder_migration.storage.archive_db import ArchiveDb

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "\\"


@dataclass(frozen=True)
class ReportTotals:
    """Run-wide sums over all transfer records."""

    folders: int
    source_items: int
    exported_items: int
    failed_items: int
    unknown_count_folders: int


class TransferReport:
    """Ordered accumulator of transfer records for one export run."""

    def __init__(self) -> None:
        self._records: list[TransferRecord] = []

    def append(self, record: TransferRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[TransferRecord]:
        """Return a copy of the collected records in walk order."""
        return list(self._records)

    def __iter__(self) -> Iterator[TransferRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def totals(self) -> ReportTotals:
        """Sum the collected records; unknown source counts are excluded from the sum."""
        known = [r.source_item_count for r in self._records if r.source_item_count != UNKNOWN_COUNT]
        return ReportTotals(
            folders=len(self._records),
            source_items=sum(known),
            exported_items=sum(r.exported_item_count for r in self._records),
            failed_items=sum(r.failed_item_count for r in self._records),
            unknown_count_folders=len(self._records) - len(known),
        )


def _read_content_type(source: FolderNode) -> ContentType | None:
    try:
        return source.content_type()
    except EnumerationUnavailableError as exc:
        logger.warning("Cannot read content type of %r: %s", source.name, exc)
        return None


def _read_item_count(source: FolderNode, source_path: str) -> int:
    try:
        return source.item_count()
    except EnumerationUnavailableError as exc:
        logger.warning("Cannot count items of %s: %s", source_path, exc)
        return UNKNOWN_COUNT


def _iter_children(source: FolderNode, source_path: str) -> list[FolderNode]:
    try:
        return list(source.children())
    except EnumerationUnavailableError as exc:
        logger.warning("Cannot list child folders of %s: %s", source_path, exc)
        return []


def _iter_items(source: FolderNode, source_path: str) -> Iterator[SourceItem]:
    try:
        yield from source.items()
    except EnumerationUnavailableError as exc:
        logger.warning("Item enumeration of %s stopped early: %s", source_path, exc)


class MirrorWalker:
    """Mirrors a source folder subtree into the archive and records statistics."""

    def __init__(
        self,
        *,
        archive: ArchiveDb,
        transport: ItemTransport,
        report: TransferReport,
        abort_on_folder_error: bool = False,
        on_record: Callable[[TransferRecord], None] | None = None,
    ) -> None:
        """Initialize the walker.

        Args:
            archive: Destination archive.
            transport: Item transfer primitives.
            report: Accumulator receiving one record per visited folder.
            abort_on_folder_error: Re-raise ``FolderCreateError`` after recording
                the unreachable subtree instead of continuing with siblings.
            on_record: Optional callback invoked after each record is appended.
        """
        self._archive = archive
        self._transport = transport
        self._report = report
        self._abort_on_folder_error = abort_on_folder_error
        self._on_record = on_record

    @property
    def report(self) -> TransferReport:
        return self._report

    def mirror_folder(
        self,
        source: FolderNode,
        dest_parent: Destination,
        source_path: str,
        *,
        dry_run: bool,
    ) -> None:
        """Mirror ``source`` beneath ``dest_parent``, then recurse into its children.

        Args:
            source: Source folder to mirror.
            dest_parent: Destination parent folder (or dry-run stand-in).
            source_path: Logical path of ``source`` used in the report.
            dry_run: Traverse and count without touching the archive.

        Raises:
            FolderCreateError: Only when ``abort_on_folder_error`` is set.
        """
        content_type = _read_content_type(source)
        total = _read_item_count(source, source_path)

        try:
            dest = ensure_typed_folder(
                self._archive,
                dest_parent,
                source.name,
                content_type,
                dry_run=dry_run,
            )
        except FolderCreateError as exc:
            logger.error(
                "Cannot create destination folder for %s; subtree not exported: %s",
                source_path,
                exc,
                extra={"folder_path": source_path},
            )
            self._record_unreachable(source, source_path, content_type, total)
            if self._abort_on_folder_error:
                raise
            return

        exported = 0
        failed = 0
        if not dry_run and isinstance(dest, ArchiveFolderRow):
            exported, failed = self._transfer_items(source, dest, source_path, total)

        self._append(
            TransferRecord(
                folder_path=source_path,
                folder_name=source.name,
                folder_id=source.folder_id,
                folder_type=content_type or ContentType.unknown,
                source_item_count=total,
                exported_item_count=exported,
                failed_item_count=failed,
            ),
        )

        for child in _iter_children(source, source_path):
            self.mirror_folder(
                child,
                dest,
                f"{source_path}{PATH_SEPARATOR}{child.name}",
                dry_run=dry_run,
            )

    def _transfer_items(
        self,
        source: FolderNode,
        dest: ArchiveFolderRow,
        source_path: str,
        total: int,
    ) -> tuple[int, int]:
        exported = 0
        failed = 0
        for item in _iter_items(source, source_path):
            # The count taken at the start of the visit is the snapshot.
            if total != UNKNOWN_COUNT and exported + failed >= total:
                logger.warning(
                    "%s gained items during export; only the first %d were transferred",
                    source_path,
                    total,
                )
                break
            result = transfer_item(item, dest, transport=self._transport)
            if result.ok:
                exported += 1
            else:
                failed += 1
        return exported, failed

    def _record_unreachable(
        self,
        source: FolderNode,
        source_path: str,
        content_type: ContentType | None,
        total: int,
    ) -> None:
        """Record a subtree that has no destination: every item counts as failed."""
        self._append(
            TransferRecord(
                folder_path=source_path,
                folder_name=source.name,
                folder_id=source.folder_id,
                folder_type=content_type or ContentType.unknown,
                source_item_count=total,
                exported_item_count=0,
                failed_item_count=max(total, 0),
            ),
        )
        for child in _iter_children(source, source_path):
            child_path = f"{source_path}{PATH_SEPARATOR}{child.name}"
            self._record_unreachable(
                child,
                child_path,
                _read_content_type(child),
                _read_item_count(child, child_path),
            )

    def _append(self, record: TransferRecord) -> None:
        self._report.append(record)
        logger.info(
            "Exported %s: %d/%d items (%d failed)",
            record.folder_path,
            record.exported_item_count,
            record.source_item_count,
            record.failed_item_count,
            extra={
                "folder_path": record.folder_path,
                "folder_type": record.folder_type.value,
                "source_item_count": record.source_item_count,
                "exported_item_count": record.exported_item_count,
                "failed_item_count": record.failed_item_count,
            },
        )
        if self._on_record is not None:
            self._on_record(record)


def mirror_children(
    walker: MirrorWalker,
    start: FolderNode,
    dest_root: ArchiveFolderRow,
    start_path: str,
    *,
    dry_run: bool,
) -> list[str]:
    """Mirror every child of ``start`` directly beneath ``dest_root``.

    The start folder itself is not exported; its children become top-level
    archive folders.

    Args:
        walker: Walker to use.
        start: Folder the export starts from.
        dest_root: Archive root folder.
        start_path: Logical path of ``start`` (``\\`` for the hierarchy root).
        dry_run: Whether to leave the archive untouched.

    Returns:
        The source paths of the mirrored top-level folders.
    """
    base = start_path.rstrip(PATH_SEPARATOR)
    visited: list[str] = []
    for child in _iter_children(start, start_path):
        child_path = f"{base}{PATH_SEPARATOR}{child.name}"
        walker.mirror_folder(child, dest_root, child_path, dry_run=dry_run)
        visited.append(child_path)
    return visited
