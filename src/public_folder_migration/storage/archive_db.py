"""SQLite archive file holding the exported folder tree and items."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from public_folder_migration.models.archive import ArchiveFolderRow, ArchiveItemRow
from public_folder_migration.models.types import FolderKind
from public_folder_migration.pipeline.errors import FolderCreateError, RelocateError
from public_folder_migration.utils.email import mime_subject
from public_folder_migration.utils.fingerprint import sha256_hex

_FOLDER_COLUMNS = "id, parent_id, name, kind, container_class, created_at"
_ITEM_COLUMNS = (
    "id, folder_id, source_id, item_class, label, sha256, size_bytes, created_at, updated_at"
)


def _utcnow() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(tz=UTC)


def _dt_to_iso(value: datetime) -> str:
    """Convert datetime to ISO string in UTC.

    Args:
        value: Datetime value.

    Returns:
        ISO-formatted string in UTC.
    """
    return value.astimezone(UTC).isoformat()


def _iso_to_dt(value: str) -> datetime:
    """Parse ISO datetime strings into timezone-aware datetimes.

    Args:
        value: ISO-formatted datetime string.

    Returns:
        Parsed datetime, defaulting to UTC if no timezone is present.
    """
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ArchiveFolderEntry:
    """Folder row together with its path relative to the archive root."""

    path: str
    depth: int
    folder: ArchiveFolderRow


class ArchiveDb:
    """SQLite wrapper for the local archive (folders and item payloads)."""

    def __init__(
        self,
        *,
        archive_path: Path,
        root_folder_name: str = "Public Folders",
        read_only: bool = False,
    ) -> None:
        """Open (or create) the archive file.

        Args:
            archive_path: Path to the sqlite archive file.
            root_folder_name: Display name of the root folder created on first use.
            read_only: Open an existing file without write access; the file is never
                created or modified.
        """
        self._archive_path = archive_path
        self._root_folder_name = root_folder_name
        if read_only:
            self._conn = sqlite3.connect(
                f"{archive_path.resolve().as_uri()}?mode=ro",
                uri=True,
                timeout=30,
                isolation_level=None,
            )
        else:
            self._conn = sqlite3.connect(
                archive_path,
                timeout=30,
                isolation_level=None,
            )
        self._conn.row_factory = sqlite3.Row

    @property
    def archive_path(self) -> Path:
        """Return the archive file path."""
        return self._archive_path

    def close(self) -> None:
        """Close the underlying sqlite connection."""
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Provide a transaction context manager."""
        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN")
            yield self._conn
            cursor.execute("COMMIT")
        except Exception:
            cursor.execute("ROLLBACK")
            raise

    def init_schema(self) -> None:
        """Create tables and the root folder if missing."""
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS folders (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  parent_id INTEGER REFERENCES folders(id),
                  name TEXT NOT NULL,
                  kind TEXT NOT NULL,
                  container_class TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  UNIQUE(parent_id, name)
                )
                """,
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS items (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  folder_id INTEGER REFERENCES folders(id),
                  source_id TEXT,
                  item_class TEXT,
                  label TEXT NOT NULL DEFAULT '',
                  mime BLOB NOT NULL,
                  sha256 TEXT NOT NULL,
                  size_bytes INTEGER NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                )
                """,
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_folder ON items(folder_id)")

            # SQLite treats NULLs as distinct in UNIQUE, so the root is guarded explicitly.
            root = conn.execute("SELECT id FROM folders WHERE parent_id IS NULL").fetchone()
            if root is None:
                conn.execute(
                    """
                    INSERT INTO folders(parent_id, name, kind, container_class, created_at)
                    VALUES(NULL, ?, ?, ?, ?)
                    """,
                    (
                        self._root_folder_name,
                        FolderKind.generic.value,
                        FolderKind.generic.container_class,
                        _dt_to_iso(_utcnow()),
                    ),
                )

            conn.execute("PRAGMA user_version = 1")

    def is_initialized(self) -> bool:
        """Return True if the schema exists and holds a root folder."""
        table = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='folders'",
        ).fetchone()
        if table is None:
            return False
        root = self._conn.execute("SELECT id FROM folders WHERE parent_id IS NULL").fetchone()
        return root is not None

    def root_folder(self) -> ArchiveFolderRow:
        """Return the archive root folder.

        Raises:
            LookupError: If the schema has not been initialized.
        """
        row = self._conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE parent_id IS NULL ORDER BY id LIMIT 1",
        ).fetchone()
        if row is None:
            raise LookupError(f"Archive has no root folder: {self._archive_path}")
        return self._row_to_folder(row)

    def get_folder(self, *, folder_id: int) -> ArchiveFolderRow | None:
        """Fetch a folder row by id."""
        row = self._conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE id=?",
            (folder_id,),
        ).fetchone()
        return self._row_to_folder(row) if row is not None else None

    def find_child(self, *, parent_id: int, name: str) -> ArchiveFolderRow | None:
        """Find a direct child folder by exact name.

        Args:
            parent_id: Parent folder id.
            name: Child folder name.

        Returns:
            Folder row if present, otherwise None.
        """
        row = self._conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE parent_id=? AND name=?",
            (parent_id, name),
        ).fetchone()
        return self._row_to_folder(row) if row is not None else None

    def create_folder(self, *, parent_id: int, name: str, kind: FolderKind) -> ArchiveFolderRow:
        """Create a child folder of the given kind.

        Args:
            parent_id: Parent folder id.
            name: New folder name.
            kind: Folder kind; determines the stored container class.

        Returns:
            The created folder row.

        Raises:
            FolderCreateError: If the name is blank, already taken, or the parent is missing.
        """
        if not name.strip():
            raise FolderCreateError(f"Folder name must not be blank (parent id={parent_id})")

        try:
            with self.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO folders(parent_id, name, kind, container_class, created_at)
                    VALUES(?, ?, ?, ?, ?)
                    """,
                    (parent_id, name, kind.value, kind.container_class, _dt_to_iso(_utcnow())),
                )
                folder_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise FolderCreateError(
                f"Cannot create folder {name!r} under parent id={parent_id}: {exc}",
            ) from exc

        created = self.get_folder(folder_id=folder_id) if folder_id is not None else None
        if created is None:
            raise LookupError(f"Folder {name!r} missing after insert under parent id={parent_id}")
        return created

    def iter_children(self, *, parent_id: int) -> Iterator[ArchiveFolderRow]:
        """Yield the direct children of a folder ordered by name."""
        rows = self._conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE parent_id=? ORDER BY name, id",
            (parent_id,),
        ).fetchall()
        for row in rows:
            yield self._row_to_folder(row)

    def iter_folders(self, *, separator: str = "\\") -> Iterator[ArchiveFolderEntry]:
        """Yield every folder below the root, depth-first, with relative paths.

        Args:
            separator: Path separator used to build the relative paths.

        Yields:
            Folder entries; the root itself is not included.
        """
        root = self.root_folder()
        stack: list[tuple[ArchiveFolderRow, str, int]] = [
            (child, child.name, 1)
            for child in reversed(list(self.iter_children(parent_id=root.id)))
        ]
        while stack:
            folder, path, depth = stack.pop()
            yield ArchiveFolderEntry(path=path, depth=depth, folder=folder)
            children = list(self.iter_children(parent_id=folder.id))
            for child in reversed(children):
                stack.append((child, f"{path}{separator}{child.name}", depth + 1))

    def stage_item(
        self,
        *,
        source_id: str | None,
        item_class: str | None,
        mime: bytes,
    ) -> ArchiveItemRow:
        """Store an item payload without a folder (a staged duplicate).

        Args:
            source_id: Identifier of the source item, for traceability.
            item_class: Source message class (``IPM.Note``, ``IPM.Appointment``, ...).
            mime: Raw MIME content.

        Returns:
            The staged item row.
        """
        now = _dt_to_iso(_utcnow())
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO items(
                  folder_id, source_id, item_class, label, mime, sha256, size_bytes,
                  created_at, updated_at
                )
                VALUES(NULL, ?, ?, '', ?, ?, ?, ?, ?)
                """,
                (source_id, item_class, mime, sha256_hex(mime), len(mime), now, now),
            )
            item_id = cursor.lastrowid
        staged = self.get_item(item_id=item_id) if item_id is not None else None
        if staged is None:
            raise LookupError(f"Staged item for source {source_id!r} missing after insert")
        return staged

    def relocate_item(self, *, item_id: int, folder_id: int) -> ArchiveItemRow:
        """Move a staged item into a folder, labelling it from its MIME subject.

        Args:
            item_id: Staged item id.
            folder_id: Destination folder id.

        Returns:
            The relocated item row.

        Raises:
            RelocateError: If the item or folder does not exist.
        """
        with self.transaction() as conn:
            item = conn.execute("SELECT mime FROM items WHERE id=?", (item_id,)).fetchone()
            if item is None:
                raise RelocateError(f"Item id={item_id} does not exist")
            folder = conn.execute("SELECT id FROM folders WHERE id=?", (folder_id,)).fetchone()
            if folder is None:
                raise RelocateError(f"Destination folder id={folder_id} does not exist")

            conn.execute(
                "UPDATE items SET folder_id=?, label=?, updated_at=? WHERE id=?",
                (
                    folder_id,
                    mime_subject(bytes(item["mime"])) or "",
                    _dt_to_iso(_utcnow()),
                    item_id,
                ),
            )

        relocated = self.get_item(item_id=item_id)
        if relocated is None:
            raise LookupError(f"Item id={item_id} missing after relocation")
        return relocated

    def get_item(self, *, item_id: int) -> ArchiveItemRow | None:
        """Fetch an item row (without its payload) by id."""
        row = self._conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM items WHERE id=?",
            (item_id,),
        ).fetchone()
        return self._row_to_item(row) if row is not None else None

    def get_item_mime(self, *, item_id: int) -> bytes | None:
        """Return the raw MIME payload of an item."""
        row = self._conn.execute("SELECT mime FROM items WHERE id=?", (item_id,)).fetchone()
        return bytes(row["mime"]) if row is not None else None

    def set_item_label(self, *, item_id: int, label: str) -> None:
        """Overwrite the display label of an item.

        Raises:
            LookupError: If the item does not exist.
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE items SET label=?, updated_at=? WHERE id=?",
                (label, _dt_to_iso(_utcnow()), item_id),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"Item id={item_id} does not exist")

    def iter_items(self, *, folder_id: int) -> Iterator[ArchiveItemRow]:
        """Yield the items of a folder in insertion order."""
        rows = self._conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM items WHERE folder_id=? ORDER BY id",
            (folder_id,),
        ).fetchall()
        for row in rows:
            yield self._row_to_item(row)

    def count_items(self, *, folder_id: int) -> int:
        """Return the number of items stored in a folder."""
        row = self._conn.execute(
            "SELECT COUNT(*) AS c FROM items WHERE folder_id=?",
            (folder_id,),
        ).fetchone()
        return int(row["c"]) if row is not None else 0

    def count_orphaned_items(self) -> int:
        """Return the number of staged duplicates never relocated into a folder."""
        row = self._conn.execute(
            "SELECT COUNT(*) AS c FROM items WHERE folder_id IS NULL",
        ).fetchone()
        return int(row["c"]) if row is not None else 0

    @staticmethod
    def _row_to_folder(row: sqlite3.Row) -> ArchiveFolderRow:
        """Convert a sqlite row to a folder model."""
        return ArchiveFolderRow(
            id=row["id"],
            parent_id=row["parent_id"],
            name=row["name"],
            kind=FolderKind(row["kind"]),
            container_class=row["container_class"],
            created_at=_iso_to_dt(row["created_at"]),
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ArchiveItemRow:
        """Convert a sqlite row to an item model."""
        return ArchiveItemRow(
            id=row["id"],
            folder_id=row["folder_id"],
            source_id=row["source_id"],
            item_class=row["item_class"],
            label=row["label"],
            sha256=row["sha256"],
            size_bytes=row["size_bytes"],
            created_at=_iso_to_dt(row["created_at"]),
            updated_at=_iso_to_dt(row["updated_at"]),
        )
