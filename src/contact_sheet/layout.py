"""
Grid geometry for contact sheet pages.

Why this module exists:
- Every pixel offset used by the compositor and the caption renderer comes
  from here, so the layout rules live in one pure, easily tested place.
- The mapping from input index to (page, row, col) must never depend on how
  pages are rendered.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

from .utils import validate_non_negative_int, validate_positive_int


# Letter page proportion (11in / 8.5in). Rows per page are derived from it.
PAGE_PROPORTION = 11 / 8.5


@dataclass(frozen=True)
class CellPosition:
    """Where a single input item lands on the sheet."""

    index: int
    page: int
    local_index: int
    row: int
    col: int


@dataclass(frozen=True)
class GridConfig:
    """Immutable grid geometry, computed once per run by compute_grid()."""

    columns: int
    rows: int
    cell_width: int
    cell_height: int
    horizontal_margin: int
    vertical_margin: int

    @property
    def capacity(self) -> int:
        """Cells per page."""

        return self.rows * self.columns

    @property
    def canvas_width(self) -> int:
        return self.columns * self.cell_width + (self.columns - 1) * self.horizontal_margin

    @property
    def canvas_height(self) -> int:
        # The vertical margin is counted once per row, including the last one,
        # so the bottom row keeps its caption band.
        return self.rows * self.cell_height + self.rows * self.vertical_margin

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.canvas_width, self.canvas_height

    def cell_origin(self, row: int, col: int) -> Tuple[int, int]:
        """Top-left pixel of the image area for a cell."""

        x = col * self.cell_width + col * self.horizontal_margin
        y = row * self.cell_height + row * self.vertical_margin
        return x, y

    def position_of(self, index: int) -> CellPosition:
        """Map a zero-based input index to its page and cell."""

        if index < 0:
            raise ValueError(f"Item index must be >= 0, got {index}.")
        page, local_index = divmod(index, self.capacity)
        row, col = divmod(local_index, self.columns)
        return CellPosition(
            index=index,
            page=page,
            local_index=local_index,
            row=row,
            col=col,
        )

    def page_count(self, total_items: int) -> int:
        """Pages needed for total_items; zero items means zero pages."""

        if total_items <= 0:
            return 0
        return -(-total_items // self.capacity)


def compute_grid(
    columns: int,
    cell_width: int,
    cell_height: int,
    horizontal_margin: int = 0,
    vertical_margin: int = 0,
) -> GridConfig:
    """
    Build the grid geometry for a run.

    Rows follow the page proportion: floor(columns * 11 / 8.5), so five
    columns give six rows.
    """

    columns = validate_positive_int(columns, "columns")
    cell_width = validate_positive_int(cell_width, "cell_width")
    cell_height = validate_positive_int(cell_height, "cell_height")
    horizontal_margin = validate_non_negative_int(horizontal_margin, "horizontal_margin")
    vertical_margin = validate_non_negative_int(vertical_margin, "vertical_margin")

    rows = int(math.floor(columns * PAGE_PROPORTION))
    return GridConfig(
        columns=columns,
        rows=rows,
        cell_width=cell_width,
        cell_height=cell_height,
        horizontal_margin=horizontal_margin,
        vertical_margin=vertical_margin,
    )
