"""Database bootstrap helpers and ORM models for the movie-vault index."""

from .models import (
    DEFAULT_DATABASE_URL,
    Base,
    IndexEntry,
    create_session_factory,
    get_engine,
    metadata,
)

__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "IndexEntry",
    "create_session_factory",
    "get_engine",
    "metadata",
]
