"""Database schema definitions for the movie-vault metadata index.

The index keeps one :class:`IndexEntry` row per stored movie. Rows are
partitioned by ``collection`` (``"movies"`` for user projects, ``"assets"``
for starter templates) and carry the derived metadata as a JSON document.
Alongside the ORM mapping the module provides helpers for instantiating a
SQLite-backed engine and constructing sessions so tests and runtime code
share the same bootstrap path.
"""
from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"
"""Connection string used when no URL is supplied."""


def _utcnow() -> datetime:
    """Return an aware UTC timestamp used by default for temporal columns."""

    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models of the index schema."""


metadata = Base.metadata
"""Exposed metadata object for table management."""


class IndexEntry(Base):
    """Metadata record for one movie inside one collection."""

    __tablename__ = "index_entries"
    __table_args__ = (
        UniqueConstraint("collection", "movie_id", name="uq_index_entry_collection_movie"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    collection: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    movie_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    record: Mapped[dict[str, Any]] = mapped_column(JSON(), nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


def _configure_sqlite_pragma(engine: Engine) -> None:
    """Ensure SQLite engines wait on locks held by concurrent writers."""

    if engine.url.get_backend_name() != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA busy_timeout=5000")
        finally:
            cursor.close()


def _ensure_sqlite_parent(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def get_engine(url: str | None = None, **kwargs: Any) -> Engine:
    """Return a configured SQLAlchemy engine with the index schema created.

    Parameters
    ----------
    url:
        Optional database URL. Defaults to an in-memory SQLite database.
    **kwargs:
        Additional keyword arguments forwarded to :func:`sqlalchemy.create_engine`.
    """

    actual_url = url or DEFAULT_DATABASE_URL
    _ensure_sqlite_parent(actual_url)
    if actual_url == DEFAULT_DATABASE_URL and "poolclass" not in kwargs:
        # Every connection to ``:memory:`` is a fresh database; share one.
        kwargs.setdefault("poolclass", StaticPool)
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    engine = create_engine(actual_url, **kwargs)
    _configure_sqlite_pragma(engine)
    metadata.create_all(engine)
    return engine


def create_session_factory(
    engine: Engine | None = None,
    *,
    expire_on_commit: bool = False,
    autoflush: bool = False,
) -> sessionmaker[Session]:
    """Return a ``sessionmaker`` bound to the supplied engine.

    Objects stay usable after commits so repository methods can hand
    detached rows back to callers.
    """

    bound_engine = engine or get_engine()
    return sessionmaker(
        bind=bound_engine,
        expire_on_commit=expire_on_commit,
        autoflush=autoflush,
    )


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "IndexEntry",
    "create_session_factory",
    "get_engine",
    "metadata",
]
