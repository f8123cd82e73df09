"""Tests for placeholder thumbnail rendering."""

from __future__ import annotations

import io

from PIL import Image

from movie_vault.thumbnails import DEFAULT_THUMBNAIL_SIZE, image_format, render_placeholder


def test_placeholder_is_png_of_requested_size() -> None:
    payload = render_placeholder("My movie")

    assert image_format(payload) == "PNG"
    with Image.open(io.BytesIO(payload)) as image:
        assert image.size == DEFAULT_THUMBNAIL_SIZE


def test_placeholder_without_title() -> None:
    payload = render_placeholder("", size=(16, 9))

    with Image.open(io.BytesIO(payload)) as image:
        assert image.size == (16, 9)


def test_image_format_rejects_non_images() -> None:
    assert image_format(b"not an image") is None
