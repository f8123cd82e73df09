"""Persistence layers for movie-vault: files, metadata index and coordinator."""

from .files import DOCUMENT_SUFFIX, THUMBNAIL_SUFFIX, MovieFileStore
from .index import (
    ASSETS_COLLECTION,
    MOVIES_COLLECTION,
    STARTER_MOVIE_TYPE,
    IndexRecord,
    MetadataIndex,
    MovieIndex,
    ProjectKind,
    UpsertResult,
)
from .service import LEGACY_MARKER, DeleteReport, MovieService, generate_id

__all__ = [
    "ASSETS_COLLECTION",
    "DOCUMENT_SUFFIX",
    "DeleteReport",
    "IndexRecord",
    "LEGACY_MARKER",
    "MOVIES_COLLECTION",
    "MetadataIndex",
    "MovieFileStore",
    "MovieIndex",
    "MovieService",
    "ProjectKind",
    "STARTER_MOVIE_TYPE",
    "THUMBNAIL_SUFFIX",
    "UpsertResult",
    "generate_id",
]
