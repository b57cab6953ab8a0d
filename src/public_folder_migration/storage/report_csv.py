"""CSV serialization of export transfer records."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from public_folder_migration.models.types import TransferRecord

REPORT_COLUMNS: tuple[str, ...] = (
    "FolderPath",
    "FolderName",
    "FolderId",
    "FolderType",
    "SourceItemCount",
    "ExportedItemCount",
    "FailedItemCount",
)


def record_to_row(record: TransferRecord) -> list[str]:
    """Render one record in ``REPORT_COLUMNS`` order."""
    return [
        record.folder_path,
        record.folder_name,
        record.folder_id,
        record.folder_type.value,
        str(record.source_item_count),
        str(record.exported_item_count),
        str(record.failed_item_count),
    ]


def default_report_path(reports_dir: Path, *, created_at: datetime) -> Path:
    """Return the report path for a run started at ``created_at``."""
    stamp = created_at.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
    return reports_dir / f"export-{stamp}.csv"


def write_report_csv(records: Iterable[TransferRecord], path: Path) -> int:
    """Write transfer records to a CSV file with a header row.

    Args:
        records: Records in walk order.
        path: Output path; parent directories are created.

    Returns:
        Number of data rows written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(REPORT_COLUMNS)
        for record in records:
            writer.writerow(record_to_row(record))
            written += 1
    return written
