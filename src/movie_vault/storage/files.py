"""Filesystem store holding the ``<id>.xml``/``<id>.png`` pair of each movie."""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Final

from ..exceptions import NotFoundError, StorageIOError
from ..utils.paths import coerce_required_path, validate_movie_id

__all__ = [
    "DOCUMENT_SUFFIX",
    "THUMBNAIL_SUFFIX",
    "MovieFileStore",
]

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX: Final[str] = ".xml"
THUMBNAIL_SUFFIX: Final[str] = ".png"

_COPY_CHUNK_SIZE: Final[int] = 64 * 1024
_FILE_MODE: Final[int] = 0o666
_TEMP_FLAGS: Final[int] = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)


class MovieFileStore:
    """Map movie identifiers to two co-located files under *root*."""

    def __init__(self, root: str | Path) -> None:
        self._root = coerce_required_path(root, empty_error="Saved folder cannot be empty")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def root(self) -> Path:
        """Return the directory holding every movie pair."""

        return self._root

    def document_path(self, movie_id: str) -> Path:
        """Return the timeline document location for *movie_id*."""

        return self._root / f"{validate_movie_id(movie_id)}{DOCUMENT_SUFFIX}"

    def thumbnail_path(self, movie_id: str) -> Path:
        """Return the thumbnail location for *movie_id*."""

        return self._root / f"{validate_movie_id(movie_id)}{THUMBNAIL_SUFFIX}"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def exists(self, movie_id: str) -> bool:
        """Return ``True`` when the thumbnail for *movie_id* is present."""

        return self.thumbnail_path(movie_id).is_file()

    def has_document(self, movie_id: str) -> bool:
        """Return ``True`` when the timeline document for *movie_id* is present."""

        return self.document_path(movie_id).is_file()

    def modified_time(self, movie_id: str) -> datetime:
        """Return the last-write time of the document as an aware UTC datetime."""

        path = self.document_path(movie_id)
        try:
            stat = path.stat()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Movie {movie_id} has no document") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to stat {path!s}: {exc}") from exc
        return datetime.fromtimestamp(stat.st_mtime, tz=UTC)

    def iter_ids(self) -> Iterator[str]:
        """Yield identifiers that have a document file, sorted by name."""

        if not self._root.is_dir():
            return
        for path in sorted(self._root.glob(f"*{DOCUMENT_SUFFIX}")):
            if path.is_file():
                yield path.stem

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def read_document(self, movie_id: str) -> bytes:
        """Return the stored timeline document bytes."""

        return self._read(self.document_path(movie_id), movie_id, "document")

    def read_thumbnail(self, movie_id: str) -> bytes:
        """Return the stored thumbnail bytes."""

        return self._read(self.thumbnail_path(movie_id), movie_id, "thumbnail")

    def open_thumbnail(self, movie_id: str) -> IO[bytes]:
        """Return a forward-only binary stream over the thumbnail file.

        The caller owns the returned handle and must close it.
        """

        path = self.thumbnail_path(movie_id)
        try:
            return path.open("rb")
        except FileNotFoundError as exc:
            raise NotFoundError(f"Movie {movie_id} has no thumbnail") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to open {path!s}: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def write_document(self, movie_id: str, data: bytes) -> Path:
        """Create or overwrite the timeline document of *movie_id*."""

        path = self.document_path(movie_id)
        with _AtomicWriter(path) as handle:
            handle.write(data)
        return path

    def write_document_stream(self, movie_id: str, stream: IO[bytes]) -> Path:
        """Create or overwrite the document by copying from *stream*."""

        path = self.document_path(movie_id)
        with _AtomicWriter(path) as handle:
            shutil.copyfileobj(stream, handle, _COPY_CHUNK_SIZE)
        return path

    def write_thumbnail(self, movie_id: str, data: bytes) -> Path:
        """Create or overwrite the thumbnail of *movie_id*."""

        path = self.thumbnail_path(movie_id)
        with _AtomicWriter(path) as handle:
            handle.write(data)
        return path

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------
    def remove_document(self, movie_id: str) -> None:
        """Delete the document file of *movie_id*."""

        self._unlink(self.document_path(movie_id), movie_id, "document")

    def remove_thumbnail(self, movie_id: str) -> None:
        """Delete the thumbnail file of *movie_id*."""

        self._unlink(self.thumbnail_path(movie_id), movie_id, "thumbnail")

    def remove(self, movie_id: str) -> None:
        """Delete both files of *movie_id*.

        Both removals are attempted; :class:`NotFoundError` is raised afterwards
        when either file was already missing.
        """

        missing: list[str] = []
        for remover, label in (
            (self.remove_document, "document"),
            (self.remove_thumbnail, "thumbnail"),
        ):
            try:
                remover(movie_id)
            except NotFoundError:
                missing.append(label)
        if missing:
            raise NotFoundError(f"Movie {movie_id} was missing its {' and '.join(missing)}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _read(self, path: Path, movie_id: str, label: str) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Movie {movie_id} has no {label}") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to read {path!s}: {exc}") from exc

    def _unlink(self, path: Path, movie_id: str, label: str) -> None:
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Movie {movie_id} has no {label}") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to delete {path!s}: {exc}") from exc
        logger.debug("Removed %s", path)


class _AtomicWriter:
    """Write to a sibling temporary file and move it over *path* on success.

    The temporary file is created with mode ``0o666`` so the umask applies
    exactly as for a plain write.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        self._handle: IO[bytes] | None = None

    def __enter__(self) -> IO[bytes]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._temp_path, _TEMP_FLAGS, _FILE_MODE)
        except OSError as exc:
            raise StorageIOError(f"Unable to write {self._path!s}: {exc}") from exc
        self._handle = os.fdopen(fd, "wb")
        return self._handle

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._handle is None:
            raise RuntimeError(f"Writer for {self._path!s} was never entered")
        try:
            self._handle.close()
            if exc_type is None:
                os.replace(self._temp_path, self._path)
                logger.debug("Wrote %s", self._path)
        except OSError as error:
            self._discard()
            raise StorageIOError(f"Unable to write {self._path!s}: {error}") from error
        if exc_type is not None:
            self._discard()
            if issubclass(exc_type, OSError):
                raise StorageIOError(f"Unable to write {self._path!s}: {exc}") from exc

    def _discard(self) -> None:
        try:
            self._temp_path.unlink()
        except FileNotFoundError:
            pass
