"""Exchange public folder source (EWS via exchangelib)."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from exchangelib import DELEGATE, Account, Configuration, Credentials
from exchangelib.errors import EWSError

from public_folder_migration.config.settings import ExchangeSettings
from public_folder_migration.models.types import ContentType, content_type_from_container_class
from public_folder_migration.pipeline.errors import (
    DuplicateError,
    EnumerationUnavailableError,
    FolderNotFoundError,
)

logger = logging.getLogger(__name__)

# Item ids are always returned; these are the extra fields needed to copy an item.
_ITEM_FIELDS: tuple[str, ...] = ("subject", "item_class", "mime_content")


def connect_account(settings: ExchangeSettings) -> Account:
    """Create an exchangelib account for the configured mailbox.

    Uses the configured EWS server when set, otherwise autodiscover.

    Args:
        settings: Exchange connection settings.

    Returns:
        Connected exchangelib ``Account``.
    """
    credentials = Credentials(username=settings.username, password=settings.password)
    if settings.server:
        config = Configuration(server=settings.server, credentials=credentials)
        return Account(
            primary_smtp_address=settings.primary_smtp_address,
            config=config,
            autodiscover=False,
            access_type=DELEGATE,
        )
    return Account(
        primary_smtp_address=settings.primary_smtp_address,
        credentials=credentials,
        autodiscover=True,
        access_type=DELEGATE,
    )


def split_folder_path(path: str) -> list[str]:
    """Split a backslash (or slash) separated folder path into its segments."""
    return [part.strip() for part in path.replace("/", "\\").split("\\") if part.strip()]


@dataclass(frozen=True)
class ExchangeItem:
    """Adapter exposing an exchangelib item as a ``SourceItem``."""

    raw: Any

    @property
    def item_id(self) -> str:
        return str(self.raw.id)

    @property
    def label(self) -> str:
        return self.raw.subject or ""

    @property
    def item_class(self) -> str | None:
        return self.raw.item_class

    def mime_content(self) -> bytes:
        """Return the item's MIME content.

        Raises:
            DuplicateError: If the server returned no MIME content.
        """
        content = self.raw.mime_content
        if not content:
            raise DuplicateError(f"Item {self.item_id} has no MIME content")
        return bytes(content)


@dataclass(frozen=True)
class UnreadableItem:
    """Placeholder for an item EWS returned as an error instead of a payload.

    It cannot be duplicated, so the transfer counts it as failed.
    """

    folder_name: str
    position: int
    error: Exception

    @property
    def item_id(self) -> str:
        return f"{self.folder_name}#{self.position}"

    @property
    def label(self) -> str:
        return ""

    @property
    def item_class(self) -> str | None:
        return None

    def mime_content(self) -> bytes:
        raise DuplicateError(f"Item {self.item_id} could not be read: {self.error}")


@dataclass(frozen=True)
class ExchangeFolderNode:
    """Adapter exposing an exchangelib folder as a ``FolderNode``."""

    raw: Any

    @property
    def name(self) -> str:
        return self.raw.name or ""

    @property
    def folder_id(self) -> str:
        return str(self.raw.id)

    def content_type(self) -> ContentType:
        return content_type_from_container_class(self.raw.folder_class)

    def item_count(self) -> int:
        """Return the server-side item count.

        Raises:
            EnumerationUnavailableError: If the server does not report a count.
        """
        count = self.raw.total_count
        if count is None:
            raise EnumerationUnavailableError(f"No item count for folder {self.name!r}")
        return int(count)

    def children(self) -> Iterator[ExchangeFolderNode]:
        """Yield the direct child folders.

        Raises:
            EnumerationUnavailableError: If the server refuses to list them.
        """
        try:
            children = list(self.raw.children)
        except EWSError as exc:
            raise EnumerationUnavailableError(
                f"Cannot list children of {self.name!r}: {exc}",
            ) from exc
        for child in children:
            yield ExchangeFolderNode(raw=child)

    def items(self) -> Iterator[ExchangeItem | UnreadableItem]:
        """Yield the folder's items.

        Per-item errors returned by EWS are yielded as ``UnreadableItem``.

        Raises:
            EnumerationUnavailableError: If the server refuses to list them.
        """
        try:
            for position, item in enumerate(self.raw.all().only(*_ITEM_FIELDS), start=1):
                if isinstance(item, Exception):
                    logger.warning(
                        "Unreadable item %d in %r: %s",
                        position,
                        self.name,
                        item,
                        extra={"error_kind": "item_unreadable"},
                    )
                    yield UnreadableItem(folder_name=self.name, position=position, error=item)
                    continue
                yield ExchangeItem(raw=item)
        except EWSError as exc:
            raise EnumerationUnavailableError(
                f"Cannot list items of {self.name!r}: {exc}",
            ) from exc


def resolve_public_folder(account: Account, start_path: str) -> ExchangeFolderNode:
    """Resolve a public folder path beneath the public folders root.

    Segments are matched case-insensitively, as Exchange does for folder names.

    Args:
        account: Connected account.
        start_path: Path such as ``\\Sales\\Archive``; ``\\`` is the root itself.

    Returns:
        The resolved folder.

    Raises:
        FolderNotFoundError: If a path segment does not exist.
    """
    folder = account.public_folders_root
    walked: list[str] = []
    for segment in split_folder_path(start_path):
        wanted = segment.casefold()
        match = next(
            (child for child in folder.children if (child.name or "").casefold() == wanted),
            None,
        )
        walked.append(segment)
        if match is None:
            missing = "\\" + "\\".join(walked)
            raise FolderNotFoundError(f"Public folder not found: {missing}")
        folder = match
    return ExchangeFolderNode(raw=folder)
