"""Command line front-end for the movie-vault coordinator."""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path

from .config import configure
from .exceptions import MovieVaultError
from .storage import MovieService, ProjectKind

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movie-vault",
        description="Save, load and delete movie projects stored as document/thumbnail pairs.",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Folder holding the <id>.xml/<id>.png pairs (default: configured saved folder).",
    )
    parser.add_argument(
        "--database",
        default=None,
        help="SQLAlchemy URL of the metadata index (default: configured database).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Import a portable archive as a new movie.")
    upload.add_argument("archive", type=Path)
    upload.add_argument("--starter", action="store_true", help="Store as a starter template.")

    save = commands.add_parser("save", help="Save an archive or document, optionally overwriting.")
    save.add_argument("payload", type=Path)
    save.add_argument("--thumbnail", type=Path, default=None)
    save.add_argument("--id", dest="movie_id", default=None)
    save.add_argument("--starter", action="store_true", help="Store as a starter template.")

    load = commands.add_parser("load", help="Write a movie out as a portable archive.")
    load.add_argument("movie_id")
    load.add_argument("output", type=Path)
    load.add_argument("--legacy", action="store_true", help="Prefix the legacy player marker byte.")

    meta = commands.add_parser("meta", help="Print metadata derived from the stored document.")
    meta.add_argument("movie_id")

    listing = commands.add_parser("list", help="List indexed movies.")
    listing.add_argument("--starter", action="store_true", help="List starter templates instead.")

    thumbnail = commands.add_parser("thumbnail", help="Copy a movie thumbnail to a file.")
    thumbnail.add_argument("movie_id")
    thumbnail.add_argument("output", type=Path)

    cues = commands.add_parser("cues", help="Print the audio cues of a movie.")
    cues.add_argument("movie_id")

    refresh = commands.add_parser("refresh", help="Recompute the metadata of a movie.")
    refresh.add_argument("movie_id")

    remove = commands.add_parser("delete", help="Delete a movie and its index record.")
    remove.add_argument("movie_id")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = configure(saved_root=args.root, database_url=args.database)
    service = MovieService.from_config(config)

    try:
        return _dispatch(service, args)
    except (MovieVaultError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 1


def _dispatch(service: MovieService, args: argparse.Namespace) -> int:
    kind = ProjectKind.from_starter_flag(getattr(args, "starter", False))

    if args.command == "upload":
        print(service.upload(args.archive.read_bytes(), kind))
    elif args.command == "save":
        thumbnail = args.thumbnail.read_bytes() if args.thumbnail else None
        print(service.save(args.payload.read_bytes(), thumbnail, args.movie_id, kind))
    elif args.command == "load":
        args.output.write_bytes(service.load(args.movie_id, raw=not args.legacy))
    elif args.command == "meta":
        print(json.dumps(service.meta(args.movie_id).to_record(), indent=2))
    elif args.command == "list":
        for entry in service.list_movies(kind):
            title = entry.record.get("title", "")
            duration = entry.record.get("duration_string", "00:00")
            print(f"{entry.movie_id}\t{duration}\t{title}")
    elif args.command == "thumbnail":
        with service.thumbnail_stream(args.movie_id) as stream, args.output.open("wb") as out:
            shutil.copyfileobj(stream, out)
    elif args.command == "cues":
        for cue in service.audio_cues(args.movie_id):
            print(
                f"{cue.file}\t[{cue.start:g}, {cue.stop:g})"
                f"\ttrim={cue.trim_start:g},{cue.trim_end:g}"
                f"\tfade_in={cue.fade_in.duration:g}@{cue.fade_in.volume:g}"
                f"\tfade_out={cue.fade_out.duration:g}@{cue.fade_out.volume:g}"
            )
    elif args.command == "refresh":
        print(json.dumps(service.refresh(args.movie_id).to_record(), indent=2))
    elif args.command == "delete":
        report = service.delete(args.movie_id)
        print(f"Deleted {report.movie_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
