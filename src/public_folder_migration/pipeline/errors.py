"""Error taxonomy for the export walk."""

from __future__ import annotations


class ExportError(RuntimeError):
    """Base class for export failures."""


class EnumerationUnavailableError(ExportError):
    """Raised when a folder's items or children cannot be enumerated."""


class DuplicateError(ExportError):
    """Raised when an item cannot be duplicated out of its source folder."""


class RelocateError(ExportError):
    """Raised when a duplicated item cannot be moved into its destination."""


class LabelReconcileError(ExportError):
    """Raised when a drifted item label cannot be restored."""


class FolderCreateError(ExportError):
    """Raised when a destination folder cannot be created."""


class FolderNotFoundError(ExportError):
    """Raised when a start path does not resolve to a source folder."""
