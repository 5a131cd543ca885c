"""
Multi-page PDF output backed by PyMuPDF.

Each flushed canvas becomes one PDF page. Pages are appended in the order
they are submitted and the file is only written by finalize(), so a run that
fails half way never leaves a usable document behind.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, Tuple

import fitz  # PyMuPDF
from PIL import Image

from .utils import InvalidConfig, WriteError, ensure_dir


# Physical page sizes in millimetres (portrait width, height).
PAGE_SIZES_MM: Dict[str, Tuple[float, float]] = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
}

MM_TO_PT = 72.0 / 25.4


def _mm(value: float) -> float:
    return value * MM_TO_PT


def validate_page_settings(
    page_size: str,
    inset_mm: float,
    image_width_mm: float,
    jpeg_quality: int,
) -> None:
    """Fail before any rendering if the page settings cannot work."""

    if not isinstance(page_size, str) or page_size not in PAGE_SIZES_MM:
        allowed = ", ".join(sorted(PAGE_SIZES_MM))
        raise InvalidConfig(f"page_size must be one of: {allowed}.")
    for value, label in ((inset_mm, "page_inset_mm"), (image_width_mm, "image_width_mm")):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidConfig(f"{label} must be a number, got {value!r}.")
    if inset_mm < 0:
        raise InvalidConfig("page_inset_mm must be >= 0.")
    if image_width_mm <= 0:
        raise InvalidConfig("image_width_mm must be > 0.")
    page_width_mm, _ = PAGE_SIZES_MM[page_size]
    if inset_mm + image_width_mm > page_width_mm:
        raise InvalidConfig(
            f"page_inset_mm + image_width_mm ({inset_mm + image_width_mm}) exceeds "
            f"the {page_size} page width ({page_width_mm} mm)."
        )
    if isinstance(jpeg_quality, bool) or not isinstance(jpeg_quality, int):
        raise InvalidConfig("jpeg_quality must be an integer.")
    if jpeg_quality < 1 or jpeg_quality > 95:
        raise InvalidConfig("jpeg_quality must be in the range [1, 95].")


class PdfDocumentWriter:
    """
    Collect rasterized pages and save them as one PDF.

    Every page has the same physical size. The canvas is placed at a fixed
    inset from the top-left corner, scaled to image_width_mm wide with its
    height following the canvas aspect ratio.
    """

    def __init__(
        self,
        page_size: str = "a4",
        inset_mm: float = 2.0,
        image_width_mm: float = 206.0,
        jpeg_quality: int = 95,
    ) -> None:
        validate_page_settings(page_size, inset_mm, image_width_mm, jpeg_quality)
        width_mm, height_mm = PAGE_SIZES_MM[page_size]
        self.page_width = _mm(width_mm)
        self.page_height = _mm(height_mm)
        self.inset = _mm(inset_mm)
        self.image_width = _mm(image_width_mm)
        self.jpeg_quality = jpeg_quality
        self._doc = fitz.open()
        self._finalized = False

    @property
    def page_count(self) -> int:
        return int(self._doc.page_count)

    def _encode(self, canvas: Image.Image) -> bytes:
        buffer = io.BytesIO()
        canvas.convert("RGB").save(buffer, format="JPEG", quality=self.jpeg_quality)
        return buffer.getvalue()

    def image_rect(self, canvas_width: int, canvas_height: int) -> fitz.Rect:
        """Placement rectangle (in points) for a canvas of the given size."""

        height = self.image_width * canvas_height / canvas_width
        return fitz.Rect(
            self.inset,
            self.inset,
            self.inset + self.image_width,
            self.inset + height,
        )

    def append_page(self, canvas: Image.Image, page_number: int) -> None:
        """Add canvas as the next page of the document."""

        if self._finalized:
            raise WriteError("Cannot append a page after the document was finalized.")
        try:
            data = self._encode(canvas)
            page = self._doc.new_page(width=self.page_width, height=self.page_height)
            page.insert_image(self.image_rect(canvas.width, canvas.height), stream=data)
        except Exception as exc:
            raise WriteError(f"Failed to add page {page_number} to the document: {exc}") from exc

    def finalize(self, path: Path) -> bool:
        """
        Save the document to path and close it.

        Returns False without creating a file when no pages were appended.
        """

        if self._finalized:
            raise WriteError("Document was already finalized.")
        self._finalized = True

        try:
            if self._doc.page_count == 0:
                return False
            ensure_dir(path.parent, dry_run=False)
            self._doc.save(path, garbage=3, deflate=True)
            return True
        except Exception as exc:
            raise WriteError(f"Failed to write PDF {path}: {exc}") from exc
        finally:
            self._doc.close()

    def close(self) -> None:
        """Release the in-memory document without saving it."""

        if not self._doc.is_closed:
            self._doc.close()

    def __enter__(self) -> "PdfDocumentWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
