"""Tests covering the SQLAlchemy-backed metadata index."""

from __future__ import annotations

import pytest

from movie_vault.exceptions import DuplicateRecordError
from movie_vault.storage import (
    ASSETS_COLLECTION,
    MOVIES_COLLECTION,
    MovieIndex,
    ProjectKind,
    UpsertResult,
)


@pytest.fixture()
def index(database_url: str) -> MovieIndex:
    return MovieIndex.from_url(database_url)


def test_insert_and_get(index: MovieIndex) -> None:
    index.insert(MOVIES_COLLECTION, "m1", {"title": "First"})

    stored = index.get(MOVIES_COLLECTION, "m1")
    assert stored is not None
    assert stored.movie_id == "m1"
    assert stored.record == {"title": "First"}
    assert index.get(ASSETS_COLLECTION, "m1") is None


def test_insert_duplicate_raises(index: MovieIndex) -> None:
    index.insert(MOVIES_COLLECTION, "m1", {})

    with pytest.raises(DuplicateRecordError):
        index.insert(MOVIES_COLLECTION, "m1", {})


def test_update_reports_missing_records(index: MovieIndex) -> None:
    assert index.update(MOVIES_COLLECTION, "nope", {"title": "x"}) is False

    index.insert(MOVIES_COLLECTION, "m1", {"title": "old"})
    assert index.update(MOVIES_COLLECTION, "m1", {"title": "new"}) is True
    assert index.get(MOVIES_COLLECTION, "m1").record == {"title": "new"}


def test_upsert_inserts_then_updates(index: MovieIndex) -> None:
    assert index.upsert(ASSETS_COLLECTION, "t1", {"v": 1}) is UpsertResult.INSERTED
    assert index.upsert(ASSETS_COLLECTION, "t1", {"v": 2}) is UpsertResult.UPDATED

    records = index.list(ASSETS_COLLECTION)
    assert [(entry.movie_id, entry.record) for entry in records] == [("t1", {"v": 2})]


def test_list_is_scoped_to_collection(index: MovieIndex) -> None:
    index.insert(MOVIES_COLLECTION, "m1", {})
    index.insert(MOVIES_COLLECTION, "m2", {})
    index.insert(ASSETS_COLLECTION, "t1", {})

    assert [entry.movie_id for entry in index.list(MOVIES_COLLECTION)] == ["m1", "m2"]
    assert [entry.movie_id for entry in index.list(ASSETS_COLLECTION)] == ["t1"]


def test_delete(index: MovieIndex) -> None:
    index.insert(MOVIES_COLLECTION, "m1", {})

    assert index.delete(MOVIES_COLLECTION, "m1") is True
    assert index.delete(MOVIES_COLLECTION, "m1") is False
    assert index.get(MOVIES_COLLECTION, "m1") is None


def test_project_kind_maps_to_collections() -> None:
    assert ProjectKind.USER_MOVIE.collection == MOVIES_COLLECTION
    assert ProjectKind.USER_MOVIE.type_tag is None
    assert ProjectKind.STARTER_TEMPLATE.collection == ASSETS_COLLECTION
    assert ProjectKind.STARTER_TEMPLATE.type_tag == "movie"
    assert ProjectKind.from_starter_flag(True) is ProjectKind.STARTER_TEMPLATE
    assert ProjectKind.from_collection("movies") is ProjectKind.USER_MOVIE
