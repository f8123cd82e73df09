"""Tests for the filesystem half of the movie store."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from movie_vault.exceptions import NotFoundError, StorageIOError
from movie_vault.storage import MovieFileStore


@pytest.fixture()
def store(tmp_path: Path) -> MovieFileStore:
    return MovieFileStore(tmp_path / "saved")


def test_paths_are_derived_from_id(store: MovieFileStore, tmp_path: Path) -> None:
    assert store.document_path("abc") == (tmp_path / "saved" / "abc.xml").resolve()
    assert store.thumbnail_path("abc") == (tmp_path / "saved" / "abc.png").resolve()


@pytest.mark.parametrize("movie_id", ["", "../escape", "a/b", ".hidden", "with space"])
def test_unsafe_ids_are_rejected(store: MovieFileStore, movie_id: str) -> None:
    with pytest.raises(ValueError):
        store.document_path(movie_id)


def test_write_and_read_round_trip(store: MovieFileStore) -> None:
    store.write_document("m1", b"<film/>")
    store.write_thumbnail("m1", b"png")

    assert store.read_document("m1") == b"<film/>"
    assert store.read_thumbnail("m1") == b"png"
    assert store.exists("m1")
    assert store.has_document("m1")
    assert list(store.iter_ids()) == ["m1"]
    assert not [path for path in store.root.iterdir() if path.name.endswith(".tmp")]


def test_overwrite_replaces_content(store: MovieFileStore) -> None:
    store.write_thumbnail("m1", b"first")
    store.write_thumbnail("m1", b"second")

    assert store.read_thumbnail("m1") == b"second"


def test_write_document_stream(store: MovieFileStore, tmp_path: Path) -> None:
    source = tmp_path / "source.xml"
    source.write_bytes(b"x" * 200_000)

    with source.open("rb") as stream:
        store.write_document_stream("big", stream)

    assert store.read_document("big") == b"x" * 200_000


def test_reads_of_missing_files_raise_not_found(store: MovieFileStore) -> None:
    with pytest.raises(NotFoundError):
        store.read_document("missing")
    with pytest.raises(NotFoundError):
        store.read_thumbnail("missing")
    with pytest.raises(NotFoundError):
        store.open_thumbnail("missing")
    with pytest.raises(NotFoundError):
        store.modified_time("missing")
    assert not store.exists("missing")


def test_open_thumbnail_streams_bytes(store: MovieFileStore) -> None:
    store.write_thumbnail("m1", b"0123456789")

    with store.open_thumbnail("m1") as stream:
        assert stream.read(4) == b"0123"
        assert stream.read() == b"456789"
        assert stream.read() == b""


def test_modified_time_is_aware_utc(store: MovieFileStore) -> None:
    path = store.write_document("m1", b"<film/>")
    stamp = datetime(2023, 5, 4, 3, 2, 1, tzinfo=UTC).timestamp()
    os.utime(path, (stamp, stamp))

    assert store.modified_time("m1") == datetime(2023, 5, 4, 3, 2, 1, tzinfo=UTC)


def test_remove_deletes_both_files(store: MovieFileStore) -> None:
    store.write_document("m1", b"<film/>")
    store.write_thumbnail("m1", b"png")

    store.remove("m1")

    assert not store.has_document("m1")
    assert not store.exists("m1")


def test_remove_reports_missing_half_after_removing_the_other(store: MovieFileStore) -> None:
    store.write_document("m1", b"<film/>")

    with pytest.raises(NotFoundError, match="thumbnail"):
        store.remove("m1")

    assert not store.has_document("m1")


def test_unwritable_root_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = MovieFileStore(blocker / "saved")

    with pytest.raises(StorageIOError):
        store.write_document("m1", b"<film/>")


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_written_files_follow_umask(store: MovieFileStore) -> None:
    previous = os.umask(0o022)
    try:
        document = store.write_document("m1", b"<film/>")
        thumbnail = store.write_thumbnail("m1", b"png")
    finally:
        os.umask(previous)

    assert document.stat().st_mode & 0o777 == 0o644
    assert thumbnail.stat().st_mode & 0o777 == 0o644


def test_atomic_writer_requires_entering_first(tmp_path: Path) -> None:
    from movie_vault.storage.files import _AtomicWriter

    writer = _AtomicWriter(tmp_path / "m1.xml")

    with pytest.raises(RuntimeError, match="never entered"):
        writer.__exit__(None, None, None)
