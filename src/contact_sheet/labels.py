"""
Caption measurement and drawing.

Captions are centered under their cell and sit in the vertical margin band
below the image. They are never wrapped or truncated, so a long file name can
run into the neighbouring cell.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .layout import GridConfig
from .utils import InvalidConfig, validate_positive_int


Color = Tuple[int, int, int]

# Baseline sits this fraction of the vertical margin below the image.
BASELINE_MARGIN_DIVISOR = 1.3


def load_font(font_path: Optional[Path], font_size: int) -> ImageFont.FreeTypeFont:
    """
    Load the caption font once for the whole run.

    Without a font path we use Pillow's bundled scalable default font.
    """

    font_size = validate_positive_int(font_size, "font_size")
    try:
        if font_path is None:
            font = ImageFont.load_default(size=font_size)
        else:
            font = ImageFont.truetype(str(font_path), size=font_size)
    except OSError as exc:
        raise InvalidConfig(f"Failed to load caption font {font_path}: {exc}") from exc

    if not isinstance(font, ImageFont.FreeTypeFont):
        raise InvalidConfig("Caption rendering requires Pillow built with FreeType support.")
    return font


class LabelRenderer:
    """Measure and draw captions with one shared, read-only font."""

    def __init__(
        self,
        font: ImageFont.FreeTypeFont,
        grid: GridConfig,
        fill: Color = (0, 0, 0),
    ) -> None:
        self._font = font
        self._grid = grid
        self._fill = fill

    @property
    def font(self) -> ImageFont.FreeTypeFont:
        return self._font

    def measure(self, text: str) -> float:
        """Advance width of text in pixels."""

        return self._font.getlength(text)

    def label_origin(self, text: str, row: int, col: int) -> Tuple[float, int]:
        """
        Return (x, baseline_y) for a caption in cell (row, col).

        x centers the text on the cell; it may be negative when the caption is
        wider than the cell.
        """

        grid = self._grid
        text_width = self.measure(text)
        x = (
            col * grid.cell_width
            + (grid.cell_width - text_width) / 2
            + col * grid.horizontal_margin
        )
        margin_offset = grid.vertical_margin * row + grid.vertical_margin / BASELINE_MARGIN_DIVISOR
        y = grid.cell_height * (row + 1) + int(margin_offset)
        return x, y

    def draw(self, canvas: Image.Image, text: str, row: int, col: int) -> None:
        """Draw text under cell (row, col) on canvas."""

        x, y = self.label_origin(text, row, col)
        drawer = ImageDraw.Draw(canvas)
        # "ls": the anchor point is the left end of the baseline.
        drawer.text((x, y), text, fill=self._fill, font=self._font, anchor="ls")
