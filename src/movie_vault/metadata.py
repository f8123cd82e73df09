"""Derive display metadata from raw timeline-document bytes.

The timeline documents written by the authoring tool are not guaranteed to
be well-formed XML (older encoders emit stray attributes, partial writes are
possible), so nothing here parses the document. Each field is located by a
literal byte anchor instead:

* the title sits between the first ``<title>`` and the ``</title>`` that
  follows it, optionally wrapped in ``<![CDATA[ ... ]]>``;
* the duration is the value of the first ``duration="..."`` attribute;
* every ``<scene id=`` marks the start of one scene.

Documents may add attributes or reorder elements freely as long as those
anchors keep their literal text.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Final

from .exceptions import MalformedDocumentError

__all__ = [
    "DURATION_ANCHOR",
    "SCENE_ANCHOR",
    "TITLE_CLOSE_ANCHOR",
    "TITLE_OPEN_ANCHOR",
    "MovieMeta",
    "count_scenes",
    "extract",
    "format_duration",
]

logger = logging.getLogger(__name__)

TITLE_OPEN_ANCHOR: Final[bytes] = b"<title>"
TITLE_CLOSE_ANCHOR: Final[bytes] = b"</title>"
DURATION_ANCHOR: Final[bytes] = b'duration="'
SCENE_ANCHOR: Final[bytes] = b"<scene id="

_CDATA_OPEN: Final[bytes] = b"<![CDATA["
_CDATA_CLOSE: Final[bytes] = b"]]>"


@dataclass(frozen=True, slots=True)
class MovieMeta:
    """Display metadata computed from a stored timeline document."""

    id: str
    title: str
    duration: float
    duration_string: str
    date: datetime
    scene_count: int
    type: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Return a JSON-friendly mapping suitable for the index."""

        payload = asdict(self)
        payload["date"] = self.date.isoformat()
        if payload["type"] is None:
            del payload["type"]
        return payload

    def tagged(self, movie_type: str | None) -> MovieMeta:
        """Return a copy of the record carrying *movie_type*."""

        return MovieMeta(
            id=self.id,
            title=self.title,
            duration=self.duration,
            duration_string=self.duration_string,
            date=self.date,
            scene_count=self.scene_count,
            type=movie_type,
        )


def extract(
    document: bytes,
    modified: datetime,
    *,
    movie_id: str = "",
    strict: bool = False,
) -> MovieMeta:
    """Return the :class:`MovieMeta` for *document*.

    Parameters
    ----------
    document:
        Raw timeline-document bytes.
    modified:
        Last-write timestamp of the stored document, passed through as
        :attr:`MovieMeta.date`.
    movie_id:
        Identifier copied into the record.
    strict:
        When true, raise :class:`~movie_vault.exceptions.MalformedDocumentError`
        if neither the title nor the duration anchor is present. The error
        still carries the (empty) record.
    """

    data = bytes(document)
    title = _extract_title(data)
    duration = _extract_duration(data)

    record = MovieMeta(
        id=movie_id,
        title=title if title is not None else "",
        duration=duration if duration is not None else 0.0,
        duration_string=format_duration(duration or 0.0),
        date=modified,
        scene_count=count_scenes(data),
    )

    if strict and title is None and duration is None:
        raise MalformedDocumentError(
            f"Document for movie {movie_id!r} has neither a title nor a duration",
            record=record,
        )
    return record


def format_duration(seconds: float) -> str:
    """Return *seconds* rendered as zero-padded ``MM:SS``."""

    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    minutes = int(seconds // 60)
    remainder = int(seconds % 60)
    return f"{minutes:02d}:{remainder:02d}"


def count_scenes(document: bytes) -> int:
    """Count non-overlapping ``<scene id=`` anchors in *document*."""

    count = 0
    position = document.find(SCENE_ANCHOR)
    while position != -1:
        count += 1
        position = document.find(SCENE_ANCHOR, position + len(SCENE_ANCHOR))
    return count


def _extract_title(document: bytes) -> str | None:
    start = document.find(TITLE_OPEN_ANCHOR)
    if start == -1:
        return None
    start += len(TITLE_OPEN_ANCHOR)
    end = document.find(TITLE_CLOSE_ANCHOR, start)
    if end == -1:
        return None

    raw = document[start:end].strip()
    if raw.startswith(_CDATA_OPEN):
        raw = raw[len(_CDATA_OPEN) :]
        if raw.endswith(_CDATA_CLOSE):
            raw = raw[: -len(_CDATA_CLOSE)]
    return raw.decode("utf-8", errors="replace").strip()


def _extract_duration(document: bytes) -> float | None:
    start = document.find(DURATION_ANCHOR)
    if start == -1:
        return None
    start += len(DURATION_ANCHOR)
    end = document.find(b'"', start)
    if end == -1:
        logger.debug("Duration attribute is not terminated; treating as 0")
        return 0.0

    text = document[start:end].decode("ascii", errors="ignore").strip()
    try:
        value = float(text)
    except ValueError:
        logger.debug("Unparsable duration %r; treating as 0", text)
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value
