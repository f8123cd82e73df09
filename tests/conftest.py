"""Pytest configuration helpers for movie_vault tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the source directory is importable without requiring an editable install.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


SAMPLE_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<film copyable="0" duration="125.7" published="0" pshare="0">
  <meta>
    <title><![CDATA[  Office Drama  ]]></title>
    <tag><![CDATA[work]]></tag>
  </meta>
  <scene id="SCENE0" adelay="60" lock="N" index="0" color="16777215"/>
  <scene id="SCENE1" adelay="48" lock="N" index="1" color="16777215"/>
  <scene id="SCENE2" adelay="96" lock="N" index="2" color="16777215"/>
  <sound id="SOUND0" index="0" track="0" vol="1" tts="0">
    <sfile>ugc.theme.mp3</sfile>
    <start>1</start>
    <stop>240</stop>
    <fadein duration="12" vol="0.5"/>
    <fadeout duration="24" vol="0"/>
    <trimming>10,20</trimming>
  </sound>
  <sound id="SOUND1" index="1" track="1" vol="1" tts="1">
    <sfile>tts.line.mp3</sfile>
    <start>30</start>
    <stop>60</stop>
  </sound>
</film>
"""


@pytest.fixture(autouse=True)
def reset_app_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure each test runs with the default application configuration."""

    from movie_vault.config import DATABASE_URL_ENV_VAR, SAVED_ROOT_ENV_VAR, configure

    monkeypatch.delenv(SAVED_ROOT_ENV_VAR, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)
    configure()
    yield
    configure()


@pytest.fixture()
def sample_document() -> bytes:
    """Timeline document with a title, a duration, three scenes and two sounds."""

    return SAMPLE_DOCUMENT


@pytest.fixture()
def sample_thumbnail() -> bytes:
    """Small PNG used as a movie thumbnail."""

    from movie_vault.thumbnails import render_placeholder

    return render_placeholder("sample", size=(32, 18))


@pytest.fixture()
def sample_archive(sample_document: bytes, sample_thumbnail: bytes) -> bytes:
    """Portable archive wrapping the sample document and thumbnail."""

    from movie_vault.archive import ZipArchiveCodec

    return ZipArchiveCodec().pack(sample_document, sample_thumbnail)


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    """URL of an isolated on-disk SQLite index."""

    return f"sqlite+pysqlite:///{tmp_path / 'index.sqlite3'}"


@pytest.fixture()
def movie_service(tmp_path: Path, database_url: str):
    """Provide a movie service backed by temporary storage."""

    from movie_vault.storage import MovieFileStore, MovieIndex, MovieService

    return MovieService(
        MovieFileStore(tmp_path / "saved"),
        MovieIndex.from_url(database_url),
    )
