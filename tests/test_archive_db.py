"""Tests for the sqlite archive file."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from public_folder_migration.models.types import FolderKind
from public_folder_migration.pipeline.errors import FolderCreateError, RelocateError
from public_folder_migration.storage.archive_db import ArchiveDb


def test_init_schema_creates_single_root(tmp_path: Path) -> None:
    """init_schema should create the root once, even when called repeatedly."""
    db = ArchiveDb(archive_path=tmp_path / "a.sqlite3", root_folder_name="PF Export")
    db.init_schema()
    db.init_schema()

    root = db.root_folder()
    assert root.name == "PF Export"
    assert root.parent_id is None
    assert list(db.iter_folders()) == []
    db.close()


def test_create_and_find_child(archive: ArchiveDb) -> None:
    """Created folders should be found by parent and name with their kind."""
    root = archive.root_folder()
    created = archive.create_folder(parent_id=root.id, name="Events", kind=FolderKind.calendar)

    found = archive.find_child(parent_id=root.id, name="Events")
    assert found == created
    assert found.kind == FolderKind.calendar
    assert found.container_class == "IPF.Appointment"
    assert archive.find_child(parent_id=root.id, name="Missing") is None


def test_create_folder_rejects_duplicates_and_blank_names(archive: ArchiveDb) -> None:
    """Sibling names are unique and must not be blank."""
    root = archive.root_folder()
    archive.create_folder(parent_id=root.id, name="Sales", kind=FolderKind.mail)

    with pytest.raises(FolderCreateError):
        archive.create_folder(parent_id=root.id, name="Sales", kind=FolderKind.mail)
    with pytest.raises(FolderCreateError):
        archive.create_folder(parent_id=root.id, name="  ", kind=FolderKind.mail)
    with pytest.raises(FolderCreateError):
        archive.create_folder(parent_id=9999, name="Orphan", kind=FolderKind.mail)


def test_iter_folders_depth_first_paths(archive: ArchiveDb) -> None:
    """iter_folders should yield relative paths depth-first."""
    root = archive.root_folder()
    a = archive.create_folder(parent_id=root.id, name="A", kind=FolderKind.mail)
    archive.create_folder(parent_id=a.id, name="A1", kind=FolderKind.task)
    archive.create_folder(parent_id=root.id, name="B", kind=FolderKind.contact)

    entries = [(e.path, e.depth) for e in archive.iter_folders()]
    assert entries == [("A", 1), ("A\\A1", 2), ("B", 1)]


def test_stage_relocate_and_label(archive: ArchiveDb) -> None:
    """Staged items are orphans until relocated; relocation labels from MIME."""
    root = archive.root_folder()
    folder = archive.create_folder(parent_id=root.id, name="Inbox", kind=FolderKind.mail)
    mime = b"Subject: Weekly   report\r\n\r\nBody"

    staged = archive.stage_item(source_id="src-1", item_class="IPM.Note", mime=mime)
    assert staged.folder_id is None
    assert staged.size_bytes == len(mime)
    assert archive.count_orphaned_items() == 1

    moved = archive.relocate_item(item_id=staged.id, folder_id=folder.id)
    assert moved.folder_id == folder.id
    assert moved.label == "Weekly report"
    assert archive.count_orphaned_items() == 0
    assert archive.count_items(folder_id=folder.id) == 1
    assert archive.get_item_mime(item_id=staged.id) == mime

    archive.set_item_label(item_id=staged.id, label="Weekly   report")
    updated = archive.get_item(item_id=staged.id)
    assert updated is not None
    assert updated.label == "Weekly   report"
    assert [row.id for row in archive.iter_items(folder_id=folder.id)] == [staged.id]


def test_relocate_and_label_errors(archive: ArchiveDb) -> None:
    """Missing items or folders should raise typed errors."""
    staged = archive.stage_item(source_id=None, item_class=None, mime=b"\r\n")

    with pytest.raises(RelocateError):
        archive.relocate_item(item_id=staged.id, folder_id=9999)
    with pytest.raises(RelocateError):
        archive.relocate_item(item_id=9999, folder_id=archive.root_folder().id)
    with pytest.raises(LookupError):
        archive.set_item_label(item_id=9999, label="x")
    assert archive.count_orphaned_items() == 1


def test_missing_row_after_write_raises_lookup_error(
    archive: ArchiveDb,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A row that cannot be read back after a write raises LookupError."""
    root = archive.root_folder()
    staged = archive.stage_item(source_id="s1", item_class="IPM.Note", mime=b"Subject: x\r\n\r\n")

    monkeypatch.setattr(archive, "get_folder", lambda **_: None)
    monkeypatch.setattr(archive, "get_item", lambda **_: None)

    with pytest.raises(LookupError):
        archive.create_folder(parent_id=root.id, name="Gone", kind=FolderKind.mail)
    with pytest.raises(LookupError):
        archive.stage_item(source_id="s2", item_class=None, mime=b"Subject: y\r\n\r\n")
    with pytest.raises(LookupError):
        archive.relocate_item(item_id=staged.id, folder_id=root.id)


def test_read_only_archive_reports_initialization(tmp_path: Path) -> None:
    """A read-only open detects whether the schema exists and never writes."""
    path = tmp_path / "ro.sqlite3"
    path.write_bytes(b"")
    empty = ArchiveDb(archive_path=path, read_only=True)
    assert empty.is_initialized() is False
    empty.close()
    assert path.read_bytes() == b""

    db = ArchiveDb(archive_path=path)
    db.init_schema()
    db.close()

    ro = ArchiveDb(archive_path=path, read_only=True)
    assert ro.is_initialized() is True
    assert ro.root_folder().name == "Public Folders"
    with pytest.raises(sqlite3.OperationalError):
        ro.stage_item(source_id="s1", item_class=None, mime=b"x")
    ro.close()
