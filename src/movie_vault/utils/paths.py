"""Utilities for coercing user-provided values into :class:`~pathlib.Path` objects."""

from __future__ import annotations

import re
from os import PathLike
from pathlib import Path

__all__ = ["coerce_required_path", "validate_movie_id"]

_MOVIE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def _normalize_path(path: Path) -> Path:
    return path.expanduser().resolve()


def coerce_required_path(
    value: str | Path | PathLike[str],
    *,
    empty_error: str | None = None,
) -> Path:
    """Return *value* coerced into an absolute :class:`~pathlib.Path`.

    Parameters
    ----------
    value:
        Path-like object that must resolve to a non-empty filesystem location.
    empty_error:
        Optional custom error message raised when *value* cannot be coerced
        because it resolves to an empty string.
    """

    if isinstance(value, Path):
        candidate = value
    else:
        text = str(value).strip()
        if not text:
            msg = empty_error or "Path value cannot be empty."
            raise ValueError(msg)
        candidate = Path(text)

    return _normalize_path(candidate)


def validate_movie_id(movie_id: str) -> str:
    """Return *movie_id* unchanged if it is safe to use as a file name stem.

    Identifiers must start with an alphanumeric character and may only
    contain letters, digits, ``.``, ``_`` and ``-``. Anything else (path
    separators, ``..`` prefixes, whitespace) raises :class:`ValueError`.
    """

    if not isinstance(movie_id, str) or not _MOVIE_ID_PATTERN.match(movie_id):
        raise ValueError(f"Invalid movie identifier: {movie_id!r}")
    return movie_id
