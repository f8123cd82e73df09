"""Metadata index partitioned into the ``movies`` and ``assets`` collections."""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..db import IndexEntry, create_session_factory, get_engine
from ..exceptions import DuplicateRecordError

__all__ = [
    "ASSETS_COLLECTION",
    "MOVIES_COLLECTION",
    "STARTER_MOVIE_TYPE",
    "IndexRecord",
    "MetadataIndex",
    "MovieIndex",
    "ProjectKind",
    "UpsertResult",
]

logger = logging.getLogger(__name__)

MOVIES_COLLECTION = "movies"
ASSETS_COLLECTION = "assets"
STARTER_MOVIE_TYPE = "movie"
"""Type tag distinguishing starter movies from other records in ``assets``."""


class ProjectKind(enum.Enum):
    """Which collection a movie lives in, fixed when it is created."""

    USER_MOVIE = MOVIES_COLLECTION
    STARTER_TEMPLATE = ASSETS_COLLECTION

    @property
    def collection(self) -> str:
        return self.value

    @property
    def type_tag(self) -> str | None:
        """Return the ``type`` value stored in the record, if any."""

        if self is ProjectKind.STARTER_TEMPLATE:
            return STARTER_MOVIE_TYPE
        return None

    @classmethod
    def from_starter_flag(cls, is_starter: bool) -> ProjectKind:
        return cls.STARTER_TEMPLATE if is_starter else cls.USER_MOVIE

    @classmethod
    def from_collection(cls, collection: str) -> ProjectKind:
        return cls(collection)


class UpsertResult(enum.Enum):
    """Outcome of :meth:`MetadataIndex.upsert`."""

    INSERTED = "inserted"
    UPDATED = "updated"


@dataclass(slots=True)
class IndexRecord:
    """In-memory representation of one index row."""

    collection: str
    movie_id: str
    record: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class MetadataIndex(Protocol):
    """Call contract the coordinator expects from the index."""

    def insert(self, collection: str, movie_id: str, record: Mapping[str, Any]) -> None: ...

    def update(self, collection: str, movie_id: str, record: Mapping[str, Any]) -> bool: ...

    def upsert(
        self, collection: str, movie_id: str, record: Mapping[str, Any]
    ) -> UpsertResult: ...

    def get(self, collection: str, movie_id: str) -> IndexRecord | None: ...

    def list(self, collection: str) -> list[IndexRecord]: ...

    def delete(self, collection: str, movie_id: str) -> bool: ...


class MovieIndex:
    """SQLAlchemy backed implementation of :class:`MetadataIndex`.

    Every public method runs in its own session and commits before returning,
    which gives per-call atomicity and nothing more.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        self._engine = engine or get_engine()
        self._session_factory = session_factory or create_session_factory(self._engine)

    @classmethod
    def from_url(cls, url: str) -> MovieIndex:
        """Return an index bound to the database at *url*."""

        return cls(get_engine(url))

    @property
    def engine(self) -> Engine:
        return self._engine

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert(self, collection: str, movie_id: str, record: Mapping[str, Any]) -> None:
        """Add a new record; :class:`DuplicateRecordError` if one exists."""

        with self._session_factory() as session:
            session.add(
                IndexEntry(
                    collection=collection,
                    movie_id=movie_id,
                    record=dict(record),
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRecordError(
                    f"{collection} already holds a record for {movie_id}"
                ) from exc
        logger.debug("Inserted %s/%s", collection, movie_id)

    def update(self, collection: str, movie_id: str, record: Mapping[str, Any]) -> bool:
        """Replace an existing record; return ``False`` if there was none."""

        with self._session_factory() as session:
            entry = self._fetch(session, collection, movie_id)
            if entry is None:
                return False
            entry.record = dict(record)
            session.commit()
        logger.debug("Updated %s/%s", collection, movie_id)
        return True

    def upsert(
        self, collection: str, movie_id: str, record: Mapping[str, Any]
    ) -> UpsertResult:
        """Update the record for *movie_id* or insert it when absent."""

        with self._session_factory() as session:
            entry = self._fetch(session, collection, movie_id)
            if entry is not None:
                entry.record = dict(record)
                session.commit()
                return UpsertResult.UPDATED

            session.add(
                IndexEntry(collection=collection, movie_id=movie_id, record=dict(record))
            )
            try:
                session.commit()
            except IntegrityError:
                # Another writer inserted the row first; fall back to updating it.
                session.rollback()
                entry = self._fetch(session, collection, movie_id)
                if entry is None:  # pragma: no cover
                    raise
                entry.record = dict(record)
                session.commit()
                return UpsertResult.UPDATED
        logger.debug("Inserted %s/%s via upsert", collection, movie_id)
        return UpsertResult.INSERTED

    def delete(self, collection: str, movie_id: str) -> bool:
        """Remove the record for *movie_id*; return whether one existed."""

        with self._session_factory() as session:
            result = session.execute(
                delete(IndexEntry).where(
                    IndexEntry.collection == collection,
                    IndexEntry.movie_id == movie_id,
                )
            )
            session.commit()
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, collection: str, movie_id: str) -> IndexRecord | None:
        """Return the record for *movie_id* in *collection* if present."""

        with self._session_factory() as session:
            entry = self._fetch(session, collection, movie_id)
            if entry is None:
                return None
            return self._to_record(entry)

    def list(self, collection: str) -> list[IndexRecord]:
        """Return every record in *collection* ordered by creation time."""

        with self._session_factory() as session:
            entries = session.scalars(
                select(IndexEntry)
                .where(IndexEntry.collection == collection)
                .order_by(IndexEntry.created_at, IndexEntry.id)
            ).all()
            return [self._to_record(entry) for entry in entries]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _fetch(session: Session, collection: str, movie_id: str) -> IndexEntry | None:
        return session.scalars(
            select(IndexEntry).where(
                IndexEntry.collection == collection,
                IndexEntry.movie_id == movie_id,
            )
        ).first()

    @staticmethod
    def _to_record(entry: IndexEntry) -> IndexRecord:
        return IndexRecord(
            collection=entry.collection,
            movie_id=entry.movie_id,
            record=dict(entry.record or {}),
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )
