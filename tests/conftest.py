"""Shared test doubles for the source hierarchy and item transport."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from public_folder_migration.models.archive import ArchiveFolderRow
from public_folder_migration.models.types import ContentType
from public_folder_migration.pipeline.errors import (
    DuplicateError,
    EnumerationUnavailableError,
    LabelReconcileError,
    RelocateError,
)
from public_folder_migration.storage.archive_db import ArchiveDb


@dataclass
class FakeItem:
    """In-memory source item."""

    item_id: str
    label: str
    item_class: str | None = "IPM.Note"
    mime: bytes | None = None
    unreadable: bool = False

    def mime_content(self) -> bytes:
        if self.unreadable:
            raise DuplicateError(f"cannot read {self.item_id}")
        if self.mime is not None:
            return self.mime
        return f"Subject: {self.label}\r\n\r\nbody of {self.item_id}".encode()


@dataclass
class FakeFolder:
    """In-memory source folder; ``content`` None means the type is unreadable."""

    name: str
    content: ContentType | None = ContentType.mail
    item_list: list[FakeItem] = field(default_factory=list)
    child_list: list[FakeFolder] = field(default_factory=list)
    count_unavailable: bool = False
    children_unavailable: bool = False
    reported_count: int | None = None

    @property
    def folder_id(self) -> str:
        return f"id-{self.name}"

    def content_type(self) -> ContentType:
        if self.content is None:
            raise EnumerationUnavailableError("no container class")
        return self.content

    def item_count(self) -> int:
        if self.count_unavailable:
            raise EnumerationUnavailableError("access denied")
        if self.reported_count is not None:
            return self.reported_count
        return len(self.item_list)

    def children(self) -> list[FakeFolder]:
        if self.children_unavailable:
            raise EnumerationUnavailableError("access denied")
        return list(self.child_list)

    def items(self) -> list[FakeItem]:
        return list(self.item_list)


def make_items(prefix: str, count: int) -> list[FakeItem]:
    """Build ``count`` items with ids ``<prefix>1..<prefix>N``."""
    return [
        FakeItem(item_id=f"{prefix}{i}", label=f"{prefix} subject {i}")
        for i in range(1, count + 1)
    ]


@dataclass
class FakeCopy:
    """Copy produced by ``FakeTransport``."""

    source: FakeItem
    label: str
    folder_id: int | None = None


class FakeTransport:
    """Transport double recording every primitive call."""

    def __init__(
        self,
        *,
        fail_duplicate: frozenset[str] = frozenset(),
        fail_relocate: frozenset[str] = frozenset(),
        label_prefix: str = "",
        fail_label_write: bool = False,
    ) -> None:
        self.fail_duplicate = fail_duplicate
        self.fail_relocate = fail_relocate
        self.label_prefix = label_prefix
        self.fail_label_write = fail_label_write
        self.duplicates: list[FakeCopy] = []
        self.placed: dict[int, list[FakeCopy]] = defaultdict(list)
        self.label_writes = 0

    def duplicate(self, item: FakeItem) -> FakeCopy:
        if item.item_id in self.fail_duplicate:
            raise DuplicateError(f"cannot duplicate {item.item_id}")
        copy = FakeCopy(source=item, label=item.label)
        self.duplicates.append(copy)
        return copy

    def relocate(self, duplicate: FakeCopy, dest_folder: ArchiveFolderRow) -> FakeCopy:
        if duplicate.source.item_id in self.fail_relocate:
            raise RelocateError(f"cannot relocate {duplicate.source.item_id}")
        duplicate.folder_id = dest_folder.id
        duplicate.label = self.label_prefix + duplicate.label
        self.placed[dest_folder.id].append(duplicate)
        return duplicate

    def read_label(self, dest_item: FakeCopy) -> str:
        return dest_item.label

    def write_label(self, dest_item: FakeCopy, label: str) -> None:
        self.label_writes += 1
        if self.fail_label_write:
            raise LabelReconcileError("label is read-only")
        dest_item.label = label


@pytest.fixture
def archive(tmp_path: Path) -> Iterator[ArchiveDb]:
    """Initialized archive in a temporary directory."""
    db = ArchiveDb(archive_path=tmp_path / "archive.sqlite3")
    db.init_schema()
    yield db
    db.close()
