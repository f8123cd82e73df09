"""Portable archive codec for movie projects.

A portable archive is a ZIP container with two entries: ``movie.xml`` (the
timeline document) and ``thumbnail.png``. The coordinator only depends on the
:class:`ArchiveCodec` protocol, so other container formats can be plugged in
without touching the storage layer.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import IO, Final, Protocol
from xml.etree import ElementTree

from .exceptions import ArchiveError

__all__ = [
    "DOCUMENT_ENTRY",
    "THUMBNAIL_ENTRY",
    "ArchiveCodec",
    "AudioCue",
    "Fade",
    "ZipArchiveCodec",
]

logger = logging.getLogger(__name__)

DOCUMENT_ENTRY: Final[str] = "movie.xml"
THUMBNAIL_ENTRY: Final[str] = "thumbnail.png"

_FIXED_TIMESTAMP: Final[tuple[int, int, int, int, int, int]] = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True, slots=True)
class Fade:
    """Fade envelope applied to one end of an audio cue."""

    duration: float
    volume: float


@dataclass(frozen=True, slots=True)
class AudioCue:
    """Audio segment placed on the movie timeline.

    ``start``/``stop`` bound the half-open window ``[start, stop)`` on the
    timeline; ``trim_start``/``trim_end`` are offsets cut from the source file.
    """

    file: str
    start: float
    stop: float
    trim_start: float
    trim_end: float
    fade_in: Fade
    fade_out: Fade


class ArchiveCodec(Protocol):
    """Call contract the coordinator expects from an archive codec."""

    def is_archive(self, payload: bytes) -> bool: ...

    def pack(self, document: bytes, thumbnail: bytes) -> bytes: ...

    def unpack(self, archive: bytes) -> tuple[bytes, bytes]: ...

    def open_document(self, archive: bytes) -> AbstractContextManager[IO[bytes]]: ...

    def extract_audio_cues(self, document: bytes) -> list[AudioCue]: ...


class ZipArchiveCodec:
    """Read and write the ZIP based portable archive."""

    def __init__(self, *, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._compression = compression

    # ------------------------------------------------------------------
    # Container handling
    # ------------------------------------------------------------------
    def is_archive(self, payload: bytes) -> bool:
        """Return ``True`` when *payload* looks like a ZIP container."""

        return zipfile.is_zipfile(io.BytesIO(payload))

    def pack(self, document: bytes, thumbnail: bytes) -> bytes:
        """Combine *document* and *thumbnail* into one archive."""

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self._compression) as archive:
            for name, payload in ((DOCUMENT_ENTRY, document), (THUMBNAIL_ENTRY, thumbnail)):
                info = zipfile.ZipInfo(name, date_time=_FIXED_TIMESTAMP)
                info.compress_type = self._compression
                archive.writestr(info, payload)
        return buffer.getvalue()

    def unpack(self, archive: bytes) -> tuple[bytes, bytes]:
        """Split *archive* into ``(document, thumbnail)``."""

        with self._open(archive) as container:
            return (
                self._read_entry(container, DOCUMENT_ENTRY),
                self._read_entry(container, THUMBNAIL_ENTRY),
            )

    @contextmanager
    def open_document(self, archive: bytes) -> Iterator[IO[bytes]]:
        """Yield a readable stream over the document inside *archive*."""

        with self._open(archive) as container:
            try:
                handle = container.open(DOCUMENT_ENTRY)
            except KeyError as exc:
                raise ArchiveError(f"Archive has no {DOCUMENT_ENTRY} entry") from exc
            with handle:
                try:
                    yield handle
                except zipfile.BadZipFile as exc:
                    raise ArchiveError(f"Archive entry {DOCUMENT_ENTRY} is corrupt") from exc

    # ------------------------------------------------------------------
    # Audio cues
    # ------------------------------------------------------------------
    def extract_audio_cues(self, document: bytes) -> list[AudioCue]:
        """Return the ``<sound>`` elements of *document* in document order."""

        try:
            root = ElementTree.fromstring(document)
        except ElementTree.ParseError as exc:
            raise ArchiveError(f"Timeline document is not parseable: {exc}") from exc

        cues: list[AudioCue] = []
        for sound in root.iter("sound"):
            trim_start, trim_end = _parse_trimming(sound.findtext("trimming"))
            cues.append(
                AudioCue(
                    file=(sound.findtext("sfile") or "").strip(),
                    start=_to_float(sound.findtext("start")),
                    stop=_to_float(sound.findtext("stop")),
                    trim_start=trim_start,
                    trim_end=trim_end,
                    fade_in=_parse_fade(sound.find("fadein")),
                    fade_out=_parse_fade(sound.find("fadeout")),
                )
            )
        logger.debug("Extracted %d audio cues", len(cues))
        return cues

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @contextmanager
    def _open(self, archive: bytes) -> Iterator[zipfile.ZipFile]:
        try:
            container = zipfile.ZipFile(io.BytesIO(archive))
        except zipfile.BadZipFile as exc:
            raise ArchiveError("Payload is not a valid movie archive") from exc
        with container:
            yield container

    @staticmethod
    def _read_entry(container: zipfile.ZipFile, name: str) -> bytes:
        try:
            return container.read(name)
        except KeyError as exc:
            raise ArchiveError(f"Archive has no {name} entry") from exc
        except zipfile.BadZipFile as exc:
            raise ArchiveError(f"Archive entry {name} is corrupt") from exc


def _to_float(value: str | None, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


def _parse_trimming(value: str | None) -> tuple[float, float]:
    if not value:
        return 0.0, 0.0
    parts = value.split(",")
    start = _to_float(parts[0])
    end = _to_float(parts[1]) if len(parts) > 1 else 0.0
    return start, end


def _parse_fade(element: ElementTree.Element | None) -> Fade:
    if element is None:
        return Fade(duration=0.0, volume=0.0)
    return Fade(
        duration=_to_float(element.get("duration")),
        volume=_to_float(element.get("vol")),
    )
