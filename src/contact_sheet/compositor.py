"""
Decode, stretch, and paste source photos onto a page canvas.

Thumbnails are stretched to the exact cell size. Source aspect ratio is
ignored on purpose so every cell in the grid lines up.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import Image

from .utils import DecodeError


# JPEG only by default. Pass None to accept anything Pillow reads.
DEFAULT_DECODE_FORMATS: Tuple[str, ...] = ("JPEG",)


def decode_image(
    path: Path,
    formats: Optional[Sequence[str]] = DEFAULT_DECODE_FORMATS,
) -> Image.Image:
    """
    Open and fully decode an image as RGB.

    Pixel data is loaded inside the `with` block so the file handle closes
    right away; a broken file fails here instead of later during paste.
    """

    allowed = list(formats) if formats is not None else None
    try:
        with Image.open(path, formats=allowed) as opened:
            opened.load()
            return opened.convert("RGB")
    except Exception as exc:
        raise DecodeError(f"Failed to decode image {path}: {exc}") from exc


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """Stretch an image to exactly width x height with bilinear sampling."""

    return image.resize((width, height), resample=Image.Resampling.BILINEAR)


def load_cell_image(
    path: Path,
    width: int,
    height: int,
    formats: Optional[Sequence[str]] = DEFAULT_DECODE_FORMATS,
) -> Image.Image:
    """Decode a source photo and stretch it to the cell size."""

    return resize_image(decode_image(path, formats=formats), width, height)


def blit(canvas: Image.Image, image: Image.Image, offset: Tuple[int, int]) -> None:
    """Copy image onto canvas at offset, overwriting what is underneath."""

    # No mask: inputs are opaque, so this is a straight pixel copy.
    canvas.paste(image, offset)
