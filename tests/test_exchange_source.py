"""Tests for the exchangelib folder and item adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest
from exchangelib.errors import EWSError

from public_folder_migration.exchange.source import (
    ExchangeFolderNode,
    ExchangeItem,
    UnreadableItem,
    resolve_public_folder,
    split_folder_path,
)
from public_folder_migration.models.types import ContentType
from public_folder_migration.pipeline.errors import (
    DuplicateError,
    EnumerationUnavailableError,
    FolderNotFoundError,
)
from public_folder_migration.pipeline.transfer import ArchiveItemTransport
from public_folder_migration.pipeline.walker import MirrorWalker, TransferReport, mirror_children
from public_folder_migration.storage.archive_db import ArchiveDb


class _ItemQuery:
    def __init__(self, items: list[Any], error: Exception | None = None) -> None:
        self._items = items
        self._error = error
        self.only_fields: tuple[str, ...] = ()

    def only(self, *fields: str) -> _ItemQuery:
        self.only_fields = fields
        return self

    def __iter__(self) -> Any:
        if self._error is not None:
            raise self._error
        return iter(self._items)


@dataclass
class _RawFolder:
    name: str
    folder_class: str | None = "IPF.Note"
    total_count: int | None = 0
    id: str = "fid"
    child_folders: list[_RawFolder] = field(default_factory=list)
    children_error: Exception | None = None
    query: _ItemQuery = field(default_factory=lambda: _ItemQuery([]))

    @property
    def children(self) -> list[_RawFolder]:
        if self.children_error is not None:
            raise self.children_error
        return self.child_folders

    def all(self) -> _ItemQuery:
        return self.query


def test_split_folder_path() -> None:
    """Paths split on either separator and ignore empty segments."""
    assert split_folder_path("\\") == []
    assert split_folder_path("\\Sales\\Archive") == ["Sales", "Archive"]
    assert split_folder_path("Sales/Archive/") == ["Sales", "Archive"]


def test_resolve_public_folder_case_insensitive() -> None:
    """Path segments match child names regardless of case."""
    archive = _RawFolder(name="Archive", id="arch")
    root = _RawFolder(name="", child_folders=[_RawFolder(name="Sales", child_folders=[archive])])
    account = SimpleNamespace(public_folders_root=root)

    node = resolve_public_folder(account, "\\sales\\ARCHIVE")  # type: ignore[arg-type]

    assert node.raw is archive
    assert node.folder_id == "arch"
    assert resolve_public_folder(account, "\\").raw is root  # type: ignore[arg-type]


def test_resolve_public_folder_missing_segment() -> None:
    """A missing segment raises FolderNotFoundError naming the path walked so far."""
    root = _RawFolder(name="", child_folders=[_RawFolder(name="Sales")])
    account = SimpleNamespace(public_folders_root=root)

    with pytest.raises(FolderNotFoundError, match=r"\\Sales\\Nope"):
        resolve_public_folder(account, "\\Sales\\Nope\\Deeper")  # type: ignore[arg-type]


def test_folder_node_properties() -> None:
    """Folder adapters expose name, type and count."""
    node = ExchangeFolderNode(
        raw=_RawFolder(name="Events", folder_class="IPF.Appointment", total_count=7),
    )
    assert node.name == "Events"
    assert node.content_type() == ContentType.calendar
    assert node.item_count() == 7


def test_folder_node_enumeration_errors() -> None:
    """Missing counts and EWS errors become EnumerationUnavailableError."""
    node = ExchangeFolderNode(
        raw=_RawFolder(
            name="Locked",
            total_count=None,
            children_error=EWSError("access denied"),
            query=_ItemQuery([], error=EWSError("access denied")),
        ),
    )
    with pytest.raises(EnumerationUnavailableError):
        node.item_count()
    with pytest.raises(EnumerationUnavailableError):
        list(node.children())
    with pytest.raises(EnumerationUnavailableError):
        list(node.items())


def test_folder_node_items_surface_errors_and_limit_fields() -> None:
    """Per-item EWS errors surface as unreadable items; only copy fields are requested."""
    good = SimpleNamespace(id="i1", subject="Hi", item_class="IPM.Note", mime_content=b"x")
    query = _ItemQuery([good, EWSError("item gone")])
    node = ExchangeFolderNode(raw=_RawFolder(name="Inbox", query=query))

    items = list(node.items())

    assert [item.item_id for item in items] == ["i1", "Inbox#2"]
    assert isinstance(items[1], UnreadableItem)
    with pytest.raises(DuplicateError, match="item gone"):
        items[1].mime_content()
    assert "mime_content" in query.only_fields


def test_unreadable_item_is_counted_as_failed(archive: ArchiveDb) -> None:
    """An item EWS could not return is reported as failed, so the folder counts add up."""
    good = SimpleNamespace(
        id="i1",
        subject="Hi",
        item_class="IPM.Note",
        mime_content=b"Subject: Hi\r\n\r\nbody",
    )
    inbox = _RawFolder(
        name="Inbox",
        total_count=2,
        query=_ItemQuery([good, EWSError("item gone")]),
    )
    top = ExchangeFolderNode(raw=_RawFolder(name="Top", child_folders=[inbox]))
    walker = MirrorWalker(
        archive=archive,
        transport=ArchiveItemTransport(archive=archive),
        report=TransferReport(),
    )

    mirror_children(walker, top, archive.root_folder(), "\\Top", dry_run=False)

    (record,) = walker.report
    assert record.source_item_count == 2
    assert record.exported_item_count == 1
    assert record.failed_item_count == 1


def test_exchange_item_adapter() -> None:
    """Item adapters expose subject as label and refuse empty MIME."""
    item = ExchangeItem(
        raw=SimpleNamespace(id="i1", subject=None, item_class="IPM.Task", mime_content=b""),
    )
    assert item.label == ""
    assert item.item_class == "IPM.Task"
    with pytest.raises(DuplicateError):
        item.mime_content()

    full = ExchangeItem(
        raw=SimpleNamespace(id="i2", subject="Plan", item_class=None, mime_content=b"MIME"),
    )
    assert full.mime_content() == b"MIME"
