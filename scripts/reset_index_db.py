#!/usr/bin/env python3
"""Utility script to delete the movie-vault SQLite index for debugging."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy.engine import make_url

from movie_vault.config import get_config


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Delete the movie-vault metadata index. Saved <id>.xml/<id>.png "
            "files are left alone; run 'movie-vault refresh' or re-save movies "
            "to rebuild their records."
        )
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Path to the SQLite index file. Defaults to the configured database.",
    )
    parser.add_argument(
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Skip the confirmation prompt.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be removed without deleting anything.",
    )
    return parser.parse_args()


def _configured_path() -> Path | None:
    url = make_url(get_config().database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def main() -> int:
    args = _parse_args()
    target = args.path.expanduser() if args.path else _configured_path()

    if target is None:
        print("The configured index is not a SQLite file; nothing to wipe.")
        return 0

    ancillary = [target.with_suffix(target.suffix + suffix) for suffix in ("-wal", "-shm", "-journal")]
    existing = [path for path in [target, *ancillary] if path.exists()]

    if not existing:
        print(f"No index files found at {target}.")
        return 0

    if args.dry_run:
        print("[dry-run] Would remove:")
        for path in existing:
            print(f"  {path}")
        return 0

    if not args.assume_yes:
        prompt = f"This will permanently delete the movie index at {target}. Continue? [y/N] "
        try:
            reply = input(prompt).strip().lower()
        except (EOFError, KeyboardInterrupt):
            print("\nAborted.")
            return 1
        if reply not in {"y", "yes"}:
            print("Aborted.")
            return 1

    print("Deleted:")
    for path in existing:
        path.unlink(missing_ok=True)
        print(f"  {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
