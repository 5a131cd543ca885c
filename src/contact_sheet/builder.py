"""
Build a contact sheet PDF from a folder of photos.

Why this module exists:
- Keeps the run flow (validation, scanning, manifest, error reporting)
  separate from CLI parsing and from the pagination loop itself.
- Every run, successful or not, ends with a manifest describing what
  happened, unless it is a dry-run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image

from .document import PdfDocumentWriter, validate_page_settings
from .labels import LabelRenderer, load_font
from .layout import CellPosition, GridConfig, compute_grid
from .manifest import ManifestRecorder
from .sheet import PageBuilder, SheetItem
from .utils import (
    UserError,
    collect_image_files,
    ensure_file_path,
    ensure_input_dir,
)


class _RecordedWriter:
    """Forward pages to the PDF writer and note each step in the manifest."""

    def __init__(
        self,
        writer: PdfDocumentWriter,
        recorder: ManifestRecorder,
        expected_pages: int,
    ) -> None:
        self._writer = writer
        self._recorder = recorder
        self._expected_pages = expected_pages
        self.pages_appended = 0

    def append_page(self, canvas: Image.Image, page_number: int) -> None:
        self._writer.append_page(canvas, page_number)
        self.pages_appended += 1
        self._recorder.log(f"Added page {page_number}/{self._expected_pages} to the document.")
        self._recorder.add_action(action="append_page", status="appended", page=page_number)

    def finalize(self, path: Path) -> bool:
        written = self._writer.finalize(path)
        if written:
            self._recorder.log(f"Wrote {self.pages_appended} page(s) -> {path}")
            self._recorder.add_action(
                action="finalize",
                status="written",
                pages=self.pages_appended,
                output=str(path),
            )
        else:
            self._recorder.log(f"No pages were produced; {path} was not written.", level="warning")
            self._recorder.add_action(
                action="finalize",
                status="skipped",
                reason="no pages",
                output=str(path),
            )
        return written


def scan_items(in_dir: Path, extensions: Sequence[str]) -> List[SheetItem]:
    """Collect photos from in_dir in sheet order."""

    ensure_input_dir(in_dir, "Input directory")
    return [SheetItem.from_path(path) for path in collect_image_files(in_dir, extensions)]


def plan_items(
    items: Sequence[SheetItem],
    grid: GridConfig,
) -> List[Tuple[CellPosition, SheetItem]]:
    """Pair every item with its cell without decoding any image."""

    return [(grid.position_of(index), item) for index, item in enumerate(items)]


def create_contact_sheet(
    in_dir: Path,
    out_pdf: Path,
    extensions: Sequence[str],
    columns: int,
    cell_width: int,
    cell_height: int,
    horizontal_margin: int,
    vertical_margin: int,
    font_path: Optional[Path],
    font_size: int,
    decode_formats: Optional[Sequence[str]],
    page_size: str,
    page_inset_mm: float,
    image_width_mm: float,
    jpeg_quality: int,
    overwrite: bool,
    dry_run: bool,
    manifest_path: Path,
    command_string: str,
    options: Dict[str, object],
) -> int:
    """
    Lay out every photo in in_dir on a grid and save the pages as one PDF.

    Returns the number of pages produced (or planned, for a dry-run). Any
    decode or write failure stops the run and no PDF is saved.
    """

    recorder = ManifestRecorder(
        command=command_string,
        options=options,
        inputs={"in_dir": str(in_dir), "extensions": list(extensions)},
        outputs={"out_pdf": str(out_pdf), "manifest": str(manifest_path)},
        dry_run=dry_run,
        tool_version=str(options.get("version", "0.0.0")),
        verbosity=str(options.get("verbosity", "normal")),
    )

    items: List[SheetItem] = []
    pages = 0
    error_message: str | None = None
    summary: Dict[str, object] = {
        "images_found": 0,
        "pages": 0,
        "output_pdf": str(out_pdf),
    }

    try:
        ensure_input_dir(in_dir, "Input directory")
        ensure_file_path(out_pdf, "Output PDF")
        grid = compute_grid(
            columns=columns,
            cell_width=cell_width,
            cell_height=cell_height,
            horizontal_margin=horizontal_margin,
            vertical_margin=vertical_margin,
        )
        validate_page_settings(page_size, page_inset_mm, image_width_mm, jpeg_quality)
        font = load_font(font_path, font_size)

        recorder.inputs["grid"] = {
            "columns": grid.columns,
            "rows": grid.rows,
            "cell_width": grid.cell_width,
            "cell_height": grid.cell_height,
            "horizontal_margin": grid.horizontal_margin,
            "vertical_margin": grid.vertical_margin,
            "canvas_width": grid.canvas_width,
            "canvas_height": grid.canvas_height,
        }

        if out_pdf.exists() and not overwrite:
            recorder.log(f"Skipping because output exists: {out_pdf}")
            recorder.add_action(action="contact_sheet", status="skipped", output=str(out_pdf))
            summary["status"] = "skipped"
            summary["reason"] = "output exists"
            return 0

        items = scan_items(in_dir, extensions)
        recorder.inputs["files_found"] = len(items)
        expected_pages = grid.page_count(len(items))

        if not items:
            recorder.log(f"No files with extensions {', '.join(extensions)} in {in_dir}")
            summary["status"] = "no-matches"

        recorder.log(
            f"Laying out {len(items)} image(s) on {expected_pages} page(s): "
            f"{grid.columns}x{grid.rows} grid, "
            f"{grid.canvas_width}x{grid.canvas_height} px per page."
        )

        if dry_run:
            for cell, item in plan_items(items, grid):
                recorder.record_placement("dry-run", cell, item.path, item.caption)
                recorder.log(
                    f"[dry-run] Would place {item.caption} -> page {cell.page + 1}, "
                    f"row {cell.row}, col {cell.col}",
                    level="debug",
                )
            recorder.log(f"[dry-run] Would write {expected_pages} page(s) to {out_pdf}")
            pages = expected_pages
            return pages

        def _on_item_placed(
            position: int,
            total: int,
            item: SheetItem,
            cell: CellPosition,
        ) -> None:
            recorder.record_placement("placed", cell, item.path, item.caption)
            recorder.log(
                f"Placed {item.caption} ({position}/{total}) -> page {cell.page + 1}, "
                f"row {cell.row}, col {cell.col}"
            )

        with PdfDocumentWriter(
            page_size=page_size,
            inset_mm=page_inset_mm,
            image_width_mm=image_width_mm,
            jpeg_quality=jpeg_quality,
        ) as writer:
            builder = PageBuilder(
                grid=grid,
                labels=LabelRenderer(font, grid),
                writer=_RecordedWriter(writer, recorder, expected_pages),
                progress=_on_item_placed,
                decode_formats=decode_formats,
            )
            pages = builder.run(items, out_pdf)
        return pages
    except Exception as exc:
        if isinstance(exc, UserError):
            error_message = str(exc)
        else:
            error_message = f"Failed to create contact sheet from {in_dir}: {exc}"
        recorder.log(error_message, level="error")
        recorder.add_action(action="contact_sheet", status="error", error=error_message)
        if isinstance(exc, UserError):
            raise
        raise UserError(error_message) from exc
    finally:
        summary["images_found"] = len(items)
        summary["pages"] = pages
        summary["status"] = summary.get("status", "error" if error_message else "ok")
        if error_message is not None:
            summary["error"] = error_message
        recorder.write_manifest(manifest_path, summary)
