"""High level coordinator keeping movie files and index records consistent."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import IO, Final

from sqlalchemy.exc import SQLAlchemyError

from ..archive import ArchiveCodec, AudioCue, ZipArchiveCodec
from ..config import AppConfig, get_config
from ..exceptions import (
    MalformedDocumentError,
    NotFoundError,
    PartialDeleteError,
    StorageIOError,
)
from ..metadata import MovieMeta, extract
from ..thumbnails import image_format, render_placeholder
from ..utils.locks import KeyedLock
from ..utils.paths import validate_movie_id
from .files import MovieFileStore
from .index import IndexRecord, MetadataIndex, MovieIndex, ProjectKind, UpsertResult

__all__ = [
    "LEGACY_MARKER",
    "DeleteReport",
    "MovieService",
    "generate_id",
]

logger = logging.getLogger(__name__)

LEGACY_MARKER: Final[bytes] = b"\x00"
"""Type tag prepended to archives sent to the legacy player."""

INDEX_RESOURCE: Final[str] = "index"
DOCUMENT_RESOURCE: Final[str] = "document"
THUMBNAIL_RESOURCE: Final[str] = "thumbnail"


def generate_id() -> str:
    """Return a fresh, filesystem safe movie identifier."""

    return uuid.uuid4().hex


@dataclass(slots=True)
class DeleteReport:
    """Outcome of :meth:`MovieService.delete` for each movie resource."""

    movie_id: str
    removed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        """True when the index record and both files were removed."""

        return not self.missing and not self.failed

    def describe(self) -> str:
        parts = [f"removed={','.join(self.removed) or '-'}"]
        if self.missing:
            parts.append(f"missing={','.join(self.missing)}")
        if self.failed:
            parts.append(
                "failed=" + ",".join(f"{name} ({reason})" for name, reason in self.failed.items())
            )
        return " ".join(parts)


class MovieService:
    """Coordinate the file store, metadata index and archive codec.

    Every mutating operation holds a per-movie lock for its whole write
    phase, so concurrent calls on one identifier are serialized while calls
    on different identifiers proceed independently.
    """

    def __init__(
        self,
        files: MovieFileStore,
        index: MetadataIndex | None = None,
        *,
        codec: ArchiveCodec | None = None,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self._files = files
        self._index = index if index is not None else MovieIndex()
        self._codec = codec or ZipArchiveCodec()
        self._id_factory = id_factory
        self._locks = KeyedLock()

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> MovieService:
        """Build a service wired to the configured folder and database."""

        config = config or get_config()
        return cls(
            MovieFileStore(config.saved_root),
            MovieIndex.from_url(config.database_url),
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def files(self) -> MovieFileStore:
        return self._files

    @property
    def index(self) -> MetadataIndex:
        return self._index

    @property
    def codec(self) -> ArchiveCodec:
        return self._codec

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save(
        self,
        payload: bytes,
        thumbnail: bytes | None = None,
        movie_id: str | None = None,
        kind: ProjectKind = ProjectKind.USER_MOVIE,
    ) -> str:
        """Store a manually saved movie and return its identifier.

        Parameters
        ----------
        payload:
            Portable archive containing ``movie.xml``. A bare timeline
            document is accepted as well.
        thumbnail:
            PNG bytes. Overwrites the stored thumbnail when supplied.
        movie_id:
            Existing identifier to overwrite in place. A fresh one is
            allocated when omitted.
        kind:
            Collection the movie belongs to. Must match the collection an
            existing movie was created in.
        """

        movie_id = validate_movie_id(movie_id) if movie_id else self._allocate_id()

        with self._locks.hold(movie_id):
            self._ensure_kind(movie_id, kind)

            if self._codec.is_archive(payload):
                with self._codec.open_document(payload) as stream:
                    self._files.write_document_stream(movie_id, stream)
            else:
                self._files.write_document(movie_id, payload)

            if thumbnail is not None:
                self._write_thumbnail(movie_id, thumbnail)

            meta = self._compute_meta(movie_id, kind)
            if not self._files.exists(movie_id):
                logger.info("Movie %s has no thumbnail; writing a placeholder", movie_id)
                self._files.write_thumbnail(movie_id, render_placeholder(meta.title))

            result = self._index.upsert(kind.collection, movie_id, meta.to_record())

        if result is UpsertResult.INSERTED:
            logger.info("Saved new movie %s into %s", movie_id, kind.collection)
        else:
            logger.debug("Overwrote movie %s in %s", movie_id, kind.collection)
        return movie_id

    def upload(self, archive: bytes, kind: ProjectKind = ProjectKind.USER_MOVIE) -> str:
        """Import a portable archive as a brand new movie."""

        document, thumbnail = self._codec.unpack(archive)
        movie_id = self._allocate_id()

        with self._locks.hold(movie_id):
            self._files.write_document(movie_id, document)
            self._write_thumbnail(movie_id, thumbnail)
            meta = self._compute_meta(movie_id, kind)
            self._index.insert(kind.collection, movie_id, meta.to_record())

        logger.info("Uploaded movie %s into %s", movie_id, kind.collection)
        return movie_id

    def refresh(self, movie_id: str) -> MovieMeta:
        """Recompute the metadata of a stored movie and update its record."""

        validate_movie_id(movie_id)
        with self._locks.hold(movie_id):
            kind = self._locate(movie_id)
            if kind is None:
                raise NotFoundError(f"Movie {movie_id} is not indexed")
            meta = self._compute_meta(movie_id, kind)
            self._index.update(kind.collection, movie_id, meta.to_record())
        logger.debug("Refreshed metadata for %s", movie_id)
        return meta

    def delete(self, movie_id: str) -> DeleteReport:
        """Remove the index record and both files of *movie_id*.

        The index is cleared first, then the document, then the thumbnail.
        Each step runs even when an earlier one failed, so whatever remnant
        still exists is removed. Database and filesystem errors are
        recorded in the report instead of propagating. Raises
        :class:`NotFoundError` when nothing existed and
        :class:`PartialDeleteError` when only some resources could be removed.
        """

        validate_movie_id(movie_id)
        report = DeleteReport(movie_id)

        with self._locks.hold(movie_id):
            removed_from_index = False
            index_errors: list[str] = []
            for kind in ProjectKind:
                try:
                    if self._index.delete(kind.collection, movie_id):
                        removed_from_index = True
                except SQLAlchemyError as exc:
                    index_errors.append(f"{kind.collection}: {exc}")
            if index_errors:
                report.failed[INDEX_RESOURCE] = "; ".join(index_errors)
            else:
                self._record(report, INDEX_RESOURCE, removed_from_index)

            for resource, remover in (
                (DOCUMENT_RESOURCE, self._files.remove_document),
                (THUMBNAIL_RESOURCE, self._files.remove_thumbnail),
            ):
                try:
                    remover(movie_id)
                except NotFoundError:
                    self._record(report, resource, False)
                except StorageIOError as exc:
                    report.failed[resource] = str(exc)
                else:
                    self._record(report, resource, True)

        if not report.removed and not report.failed:
            raise NotFoundError(f"Movie {movie_id} does not exist")
        if not report.complete:
            logger.warning("Partial delete of movie %s: %s", movie_id, report.describe())
            raise PartialDeleteError(
                f"Movie {movie_id} was only partially deleted: {report.describe()}",
                report=report,
            )

        logger.info("Deleted movie %s", movie_id)
        return report

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def load(self, movie_id: str, raw: bool = True) -> bytes:
        """Return the movie packed as a portable archive.

        When *raw* is false the archive is prefixed with :data:`LEGACY_MARKER`
        for the legacy player.
        """

        document = self._files.read_document(movie_id)
        thumbnail = self._files.read_thumbnail(movie_id)
        packed = self._codec.pack(document, thumbnail)
        return packed if raw else LEGACY_MARKER + packed

    def meta(self, movie_id: str) -> MovieMeta:
        """Return metadata computed from the stored document of *movie_id*."""

        kind = self._locate(movie_id) or ProjectKind.USER_MOVIE
        return self._compute_meta(movie_id, kind)

    def thumbnail_stream(self, movie_id: str) -> IO[bytes]:
        """Return a forward-only stream over the stored thumbnail."""

        return self._files.open_thumbnail(movie_id)

    def audio_cues(self, movie_id: str) -> list[AudioCue]:
        """Return the audio cues of *movie_id* in document order."""

        document = self._files.read_document(movie_id)
        return self._codec.extract_audio_cues(document)

    def list_movies(self, kind: ProjectKind = ProjectKind.USER_MOVIE) -> list[IndexRecord]:
        """Return the index records of every movie of *kind*."""

        return self._index.list(kind.collection)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _allocate_id(self) -> str:
        while True:
            candidate = validate_movie_id(self._id_factory())
            if not self._files.has_document(candidate) and not self._files.exists(candidate):
                return candidate
            logger.debug("Identifier %s already on disk; allocating another", candidate)

    def _locate(self, movie_id: str) -> ProjectKind | None:
        for kind in ProjectKind:
            if self._index.get(kind.collection, movie_id) is not None:
                return kind
        return None

    def _ensure_kind(self, movie_id: str, kind: ProjectKind) -> None:
        existing = self._locate(movie_id)
        if existing is not None and existing is not kind:
            raise ValueError(
                f"Movie {movie_id} belongs to {existing.collection}, not {kind.collection}"
            )

    def _compute_meta(self, movie_id: str, kind: ProjectKind) -> MovieMeta:
        document = self._files.read_document(movie_id)
        modified = self._files.modified_time(movie_id)
        try:
            meta = extract(document, modified, movie_id=movie_id, strict=True)
        except MalformedDocumentError as exc:
            logger.warning("%s; storing empty metadata", exc)
            meta = exc.record
        return meta.tagged(kind.type_tag)

    def _write_thumbnail(self, movie_id: str, data: bytes) -> None:
        detected = image_format(data)
        if detected != "PNG":
            logger.warning(
                "Thumbnail for %s is %s, not PNG; storing it unchanged",
                movie_id,
                detected or "unrecognised",
            )
        self._files.write_thumbnail(movie_id, data)

    @staticmethod
    def _record(report: DeleteReport, resource: str, removed: bool) -> None:
        if removed:
            report.removed.append(resource)
        else:
            report.missing.append(resource)
