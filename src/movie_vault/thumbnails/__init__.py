"""Thumbnail helpers for stored movies."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageDraw, UnidentifiedImageError

__all__ = [
    "DEFAULT_THUMBNAIL_SIZE",
    "ThumbnailRenderer",
    "image_format",
    "render_placeholder",
]

logger = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_SIZE: tuple[int, int] = (320, 180)
"""Pixel dimensions of generated placeholder thumbnails."""


class ThumbnailRenderer:
    """Draw a simple title card used when a movie has no thumbnail yet."""

    def __init__(
        self,
        *,
        background: tuple[int, int, int, int] = (18, 22, 28, 255),
        frame_color: tuple[int, int, int, int] = (120, 170, 220, 255),
        text_color: tuple[int, int, int, int] = (235, 240, 245, 255),
    ) -> None:
        self._background = background
        self._frame_color = frame_color
        self._text_color = text_color

    def render(
        self,
        title: str = "",
        *,
        size: tuple[int, int] = DEFAULT_THUMBNAIL_SIZE,
    ) -> Image.Image:
        """Return a Pillow image showing *title* inside a film frame."""

        width, height = size
        image = Image.new("RGBA", (max(1, width), max(1, height)), self._background)
        draw = ImageDraw.Draw(image, "RGBA")

        margin = max(2, min(width, height) // 12)
        draw.rectangle(
            (margin, margin, width - margin - 1, height - margin - 1),
            outline=self._frame_color,
            width=max(1, margin // 3),
        )

        label = title.strip()[:40]
        if label:
            left, top, right, bottom = draw.textbbox((0, 0), label)
            x = (width - (right - left)) / 2
            y = (height - (bottom - top)) / 2
            draw.text((x, y), label, fill=self._text_color)
        return image

    def render_png(
        self,
        title: str = "",
        *,
        size: tuple[int, int] = DEFAULT_THUMBNAIL_SIZE,
    ) -> bytes:
        """Return the placeholder for *title* encoded as PNG bytes."""

        buffer = io.BytesIO()
        self.render(title, size=size).save(buffer, format="PNG")
        return buffer.getvalue()


def render_placeholder(title: str = "", *, size: tuple[int, int] = DEFAULT_THUMBNAIL_SIZE) -> bytes:
    """Return PNG bytes for a placeholder thumbnail."""

    return ThumbnailRenderer().render_png(title, size=size)


def image_format(payload: bytes) -> str | None:
    """Return the Pillow format name of *payload* or ``None`` if unreadable."""

    try:
        with Image.open(io.BytesIO(payload)) as image:
            return image.format
    except (UnidentifiedImageError, OSError) as exc:
        logger.debug("Thumbnail payload is not a recognised image: %s", exc)
        return None
