"""Tests for the movie-vault command line front-end."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from movie_vault.cli import main


@pytest.fixture()
def cli_args(tmp_path: Path, database_url: str) -> list[str]:
    return ["--root", str(tmp_path / "saved"), "--database", database_url]


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str]:
    code = main(list(argv))
    return code, capsys.readouterr().out


def test_upload_meta_load_delete_cycle(
    tmp_path: Path,
    cli_args: list[str],
    sample_archive: bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    archive_path = tmp_path / "movie.zip"
    archive_path.write_bytes(sample_archive)

    code, out = _run(capsys, *cli_args, "upload", str(archive_path), "--starter")
    assert code == 0
    movie_id = out.strip()

    code, out = _run(capsys, *cli_args, "meta", movie_id)
    assert code == 0
    meta = json.loads(out)
    assert meta["title"] == "Office Drama"
    assert meta["type"] == "movie"

    code, out = _run(capsys, *cli_args, "list", "--starter")
    assert code == 0
    assert out.startswith(f"{movie_id}\t02:05\tOffice Drama")

    output = tmp_path / "out.bin"
    code, _ = _run(capsys, *cli_args, "load", movie_id, str(output), "--legacy")
    assert code == 0
    assert output.read_bytes()[:1] == b"\x00"

    thumb = tmp_path / "thumb.png"
    code, _ = _run(capsys, *cli_args, "thumbnail", movie_id, str(thumb))
    assert code == 0
    assert thumb.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    code, out = _run(capsys, *cli_args, "cues", movie_id)
    assert code == 0
    assert out.splitlines()[0].startswith("ugc.theme.mp3\t[1, 240)")

    code, out = _run(capsys, *cli_args, "delete", movie_id)
    assert code == 0
    assert out.strip() == f"Deleted {movie_id}"


def test_missing_movie_exits_with_error(
    cli_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    code, out = _run(capsys, *cli_args, "delete", "ghost")

    assert code == 1
    assert out == ""
