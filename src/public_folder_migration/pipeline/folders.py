"""Destination folder resolution and content-type → folder-kind mapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from public_folder_migration.models.archive import ArchiveFolderRow
from public_folder_migration.models.types import ContentType, FolderKind
from public_folder_migration.storage.archive_db import ArchiveDb

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DryRunDestination:
    """Stand-in destination for folders a dry run would have created.

    It has no archive identity, so nothing can be written through it.
    """

    name: str
    parent: ArchiveFolderRow | DryRunDestination


Destination = ArchiveFolderRow | DryRunDestination


def folder_kind_for(content_type: ContentType | None) -> FolderKind:
    """Map a declared content type to the archive folder kind.

    Args:
        content_type: Declared content type, or None when it could not be read.

    Returns:
        The folder kind; unknown or unreadable types map to ``FolderKind.generic``.
    """
    match content_type:
        case ContentType.mail:
            return FolderKind.mail
        case ContentType.calendar:
            return FolderKind.calendar
        case ContentType.contact:
            return FolderKind.contact
        case ContentType.task:
            return FolderKind.task
        case _:
            return FolderKind.generic


def ensure_typed_folder(
    archive: ArchiveDb,
    dest_parent: Destination,
    name: str,
    content_type: ContentType | None,
    *,
    dry_run: bool,
) -> Destination:
    """Return the child folder ``name`` of ``dest_parent``, creating it if needed.

    Args:
        archive: Destination archive.
        dest_parent: Parent destination folder (or a dry-run stand-in).
        name: Source folder name to mirror.
        content_type: Declared content type of the source folder, None if unreadable.
        dry_run: Whether to avoid creating anything.

    Returns:
        The existing or newly created folder, or a ``DryRunDestination`` when a
        dry run would have created it.

    Raises:
        FolderCreateError: If the folder does not exist and cannot be created.
    """
    if isinstance(dest_parent, DryRunDestination):
        return DryRunDestination(name=name, parent=dest_parent)

    existing = archive.find_child(parent_id=dest_parent.id, name=name)
    if existing is not None:
        return existing

    if dry_run:
        return DryRunDestination(name=name, parent=dest_parent)

    kind = folder_kind_for(content_type)
    created = archive.create_folder(parent_id=dest_parent.id, name=name, kind=kind)
    logger.debug(
        "Created archive folder %r (%s) under id=%s",
        name,
        kind.value,
        dest_parent.id,
        extra={"folder_kind": kind.value, "folder_db_id": created.id},
    )
    return created
