"""Exception hierarchy shared by the movie-vault storage layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - used for type checking only
    from .metadata import MovieMeta
    from .storage.service import DeleteReport

__all__ = [
    "ArchiveError",
    "DuplicateRecordError",
    "MalformedDocumentError",
    "MovieVaultError",
    "NotFoundError",
    "PartialDeleteError",
    "StorageIOError",
]


class MovieVaultError(RuntimeError):
    """Base exception for every failure raised by movie-vault."""


class NotFoundError(MovieVaultError, LookupError):
    """Raised when a movie file or index record does not exist."""


class StorageIOError(MovieVaultError):
    """Raised when the asset store cannot read or write a file."""


class ArchiveError(MovieVaultError):
    """Raised when a portable archive cannot be packed or unpacked."""


class DuplicateRecordError(MovieVaultError):
    """Raised when inserting an index record whose id is already taken."""


class MalformedDocumentError(MovieVaultError, ValueError):
    """Raised when a timeline document lacks both title and duration anchors.

    The tolerant record computed anyway is available as :attr:`record` so
    callers can store it and carry on.
    """

    def __init__(self, message: str, *, record: MovieMeta) -> None:
        super().__init__(message)
        self.record = record


class PartialDeleteError(MovieVaultError):
    """Raised when ``delete`` removed some, but not all, movie resources."""

    def __init__(self, message: str, *, report: DeleteReport) -> None:
        super().__init__(message)
        self.report = report
