"""
Paginate an ordered list of photos onto contact sheet pages.

How it works:
- A single cursor walks the input list for the whole run.
- Each page gets a fresh white canvas that is filled cell by cell in
  row-major order until the grid is full or the input runs out.
- The filled canvas is handed to the document writer and never touched again.
- An input list that ends exactly on a page boundary does not produce a
  trailing blank page, and an empty input produces no pages at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence, Tuple, Union

from PIL import Image

from .compositor import DEFAULT_DECODE_FORMATS, blit, load_cell_image
from .labels import LabelRenderer
from .layout import CellPosition, GridConfig


@dataclass(frozen=True)
class SheetItem:
    """One photo on the sheet and the caption printed under it."""

    path: Path
    caption: str

    @classmethod
    def from_path(cls, path: Path) -> "SheetItem":
        return cls(path=path, caption=path.name)


@dataclass(frozen=True)
class Continuing:
    """The page filled up; more input may follow from next_cursor."""

    next_cursor: int


@dataclass(frozen=True)
class Exhausted:
    """Input ran out before the page was full."""


FillResult = Union[Continuing, Exhausted]

# (position, total, item, cell) -- position is 1-based.
ProgressObserver = Callable[[int, int, SheetItem, CellPosition], None]


class PageSink(Protocol):
    def append_page(self, canvas: Image.Image, page_number: int) -> None: ...

    def finalize(self, path: Path) -> bool: ...


class PageBuilder:
    """
    Drive the fill/flush loop for one run.

    All collaborators are passed in; nothing here reads global state.
    """

    def __init__(
        self,
        grid: GridConfig,
        labels: LabelRenderer,
        writer: PageSink,
        progress: Optional[ProgressObserver] = None,
        decode_formats: Optional[Sequence[str]] = DEFAULT_DECODE_FORMATS,
        background: Tuple[int, int, int] = (255, 255, 255),
    ) -> None:
        self.grid = grid
        self.labels = labels
        self.writer = writer
        self.progress = progress
        self.decode_formats = decode_formats
        self.background = background

    def new_canvas(self) -> Image.Image:
        return Image.new("RGB", self.grid.canvas_size, self.background)

    def place_item(self, canvas: Image.Image, item: SheetItem, row: int, col: int) -> None:
        """Stretch the item into cell (row, col) and caption it."""

        grid = self.grid
        image = load_cell_image(
            item.path,
            grid.cell_width,
            grid.cell_height,
            formats=self.decode_formats,
        )
        blit(canvas, image, grid.cell_origin(row, col))
        self.labels.draw(canvas, item.caption, row, col)

    def fill_page(
        self,
        canvas: Image.Image,
        items: Sequence[SheetItem],
        cursor: int,
    ) -> FillResult:
        """
        Fill one canvas starting at items[cursor].

        Returns Exhausted as soon as a cell has no item left, otherwise
        Continuing with the index of the first item for the next page.
        """

        total = len(items)
        for row in range(self.grid.rows):
            for col in range(self.grid.columns):
                if cursor >= total:
                    return Exhausted()
                item = items[cursor]
                self.place_item(canvas, item, row, col)
                cursor += 1
                if self.progress is not None:
                    self.progress(cursor, total, item, self.grid.position_of(cursor - 1))
        return Continuing(next_cursor=cursor)

    def build(self, items: Sequence[SheetItem]) -> int:
        """Render every page and hand it to the writer. Returns pages emitted."""

        total = len(items)
        cursor = 0
        pages = 0
        while cursor < total:
            canvas = self.new_canvas()
            result = self.fill_page(canvas, items, cursor)
            if isinstance(result, Continuing):
                cursor = result.next_cursor
            else:
                cursor = total
            page_number = -(-cursor // self.grid.capacity)
            self.writer.append_page(canvas, page_number)
            pages += 1
        return pages

    def run(self, items: Sequence[SheetItem], output_path: Path) -> int:
        """
        Build all pages, then finalize the document once.

        Any failure propagates before finalize(), so the output file is
        never written for a failed run.
        """

        pages = self.build(items)
        self.writer.finalize(output_path)
        return pages
