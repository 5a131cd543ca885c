"""
Tests for the PyMuPDF-backed page writer.
"""

from __future__ import annotations

import sys
from pathlib import Path
import unittest

import fitz  # PyMuPDF
from PIL import Image

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from contact_sheet.document import MM_TO_PT, PdfDocumentWriter  # noqa: E402
from contact_sheet.utils import InvalidConfig, WriteError  # noqa: E402
from helpers_fs import workspace_temp_dir  # noqa: E402


def _canvas(color=(200, 30, 30)) -> Image.Image:
    return Image.new("RGB", (308, 391), color)


class PdfDocumentWriterTests(unittest.TestCase):
    def test_pages_are_written_in_order(self) -> None:
        with workspace_temp_dir("doc") as root:
            out_path = root / "nested" / "sheet.pdf"
            writer = PdfDocumentWriter()
            writer.append_page(_canvas(), 1)
            writer.append_page(_canvas((30, 30, 200)), 2)
            self.assertEqual(writer.page_count, 2)

            self.assertTrue(writer.finalize(out_path))
            self.assertTrue(out_path.exists())

            with fitz.open(out_path) as doc:
                self.assertEqual(doc.page_count, 2)
                first = doc.load_page(0)
                self.assertAlmostEqual(first.rect.width, 210 * MM_TO_PT, places=1)
                self.assertAlmostEqual(first.rect.height, 297 * MM_TO_PT, places=1)
                self.assertEqual(len(first.get_images()), 1)

    def test_letter_page_size(self) -> None:
        with workspace_temp_dir("doc") as root:
            out_path = root / "letter.pdf"
            writer = PdfDocumentWriter(page_size="letter", image_width_mm=200.0)
            writer.append_page(_canvas(), 1)
            writer.finalize(out_path)
            with fitz.open(out_path) as doc:
                self.assertAlmostEqual(doc.load_page(0).rect.width, 612.0, places=0)

    def test_image_rect_keeps_canvas_proportion(self) -> None:
        writer = PdfDocumentWriter(inset_mm=2.0, image_width_mm=206.0)
        try:
            rect = writer.image_rect(3080, 3912)
            self.assertAlmostEqual(rect.x0, 2 * MM_TO_PT)
            self.assertAlmostEqual(rect.y0, 2 * MM_TO_PT)
            self.assertAlmostEqual(rect.width, 206 * MM_TO_PT)
            self.assertAlmostEqual(rect.height, 206 * MM_TO_PT * 3912 / 3080)
        finally:
            writer.close()

    def test_no_pages_means_no_file(self) -> None:
        with workspace_temp_dir("doc") as root:
            out_path = root / "empty.pdf"
            writer = PdfDocumentWriter()
            self.assertFalse(writer.finalize(out_path))
            self.assertFalse(out_path.exists())

    def test_finalize_twice_fails(self) -> None:
        with workspace_temp_dir("doc") as root:
            writer = PdfDocumentWriter()
            writer.append_page(_canvas(), 1)
            writer.finalize(root / "once.pdf")
            with self.assertRaises(WriteError):
                writer.finalize(root / "twice.pdf")
            with self.assertRaises(WriteError):
                writer.append_page(_canvas(), 2)

    def test_unwritable_target_raises_write_error(self) -> None:
        with workspace_temp_dir("doc") as root:
            blocker = root / "plain_file.txt"
            blocker.write_text("x", encoding="utf-8")
            target = blocker / "sheet.pdf"
            writer = PdfDocumentWriter()
            writer.append_page(_canvas(), 1)
            with self.assertRaises(WriteError):
                writer.finalize(target)

    def test_invalid_settings(self) -> None:
        bad_settings = [
            dict(page_size="a3"),
            dict(inset_mm=-1.0),
            dict(image_width_mm=0.0),
            dict(inset_mm=10.0, image_width_mm=206.0),
            dict(jpeg_quality=0),
            dict(jpeg_quality=100),
            dict(jpeg_quality=True),
            dict(inset_mm=None),
            dict(inset_mm="abc"),
            dict(image_width_mm=None),
            dict(page_size=None),
        ]
        for kwargs in bad_settings:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(InvalidConfig):
                    PdfDocumentWriter(**kwargs)

    def test_context_manager_closes_unsaved_document(self) -> None:
        with PdfDocumentWriter() as writer:
            writer.append_page(_canvas(), 1)
        self.assertEqual(writer._doc.is_closed, True)


if __name__ == "__main__":
    unittest.main()
