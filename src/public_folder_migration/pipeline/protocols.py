"""Structural types for the export source and item transport."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from public_folder_migration.models.archive import ArchiveFolderRow
from public_folder_migration.models.types import ContentType


class SourceItem(Protocol):
    """An item readable from a source folder."""

    @property
    def item_id(self) -> str: ...

    @property
    def label(self) -> str: ...

    @property
    def item_class(self) -> str | None: ...

    def mime_content(self) -> bytes: ...


class FolderNode(Protocol):
    """A read-only folder of the source hierarchy.

    Enumeration methods raise ``EnumerationUnavailableError`` when the source
    refuses to list the folder.
    """

    @property
    def name(self) -> str: ...

    @property
    def folder_id(self) -> str: ...

    def content_type(self) -> ContentType: ...

    def item_count(self) -> int: ...

    def children(self) -> Iterable[FolderNode]: ...

    def items(self) -> Iterable[SourceItem]: ...


class ItemTransport(Protocol):
    """Primitives used to copy one item into an archive folder.

    ``duplicate`` raises ``DuplicateError``, ``relocate`` raises
    ``RelocateError`` and the label methods raise ``LabelReconcileError``.
    """

    def duplicate(self, item: SourceItem) -> Any: ...

    def relocate(self, duplicate: Any, dest_folder: ArchiveFolderRow) -> Any: ...

    def read_label(self, dest_item: Any) -> str: ...

    def write_label(self, dest_item: Any, label: str) -> None: ...
