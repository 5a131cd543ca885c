"""
End-to-end runs of create_contact_sheet and manifest structure checks.
"""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from typing import Any, Dict
import unittest

import fitz  # PyMuPDF

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from contact_sheet.builder import create_contact_sheet  # noqa: E402
from contact_sheet.layout import CellPosition  # noqa: E402
from contact_sheet.manifest import ManifestRecorder  # noqa: E402
from contact_sheet.utils import DecodeError, InvalidConfig  # noqa: E402
from helpers_cli import capture_output  # noqa: E402
from helpers_fs import workspace_temp_dir, write_photos  # noqa: E402


def _run(in_dir: Path, **overrides: Any) -> int:
    settings: Dict[str, Any] = dict(
        in_dir=in_dir,
        out_pdf=in_dir / "contactsheet.pdf",
        extensions=[".jpeg", ".jpg"],
        columns=2,
        cell_width=40,
        cell_height=30,
        horizontal_margin=4,
        vertical_margin=12,
        font_path=None,
        font_size=8,
        decode_formats=["JPEG"],
        page_size="a4",
        page_inset_mm=2.0,
        image_width_mm=206.0,
        jpeg_quality=95,
        overwrite=False,
        dry_run=False,
        manifest_path=in_dir / "manifest.json",
        command_string="contact-sheet build",
        options={"version": "0.0.0"},
    )
    settings.update(overrides)
    with capture_output():
        return create_contact_sheet(**settings)


def _manifest(in_dir: Path) -> Dict[str, Any]:
    return json.loads((in_dir / "manifest.json").read_text(encoding="utf-8"))


class CreateContactSheetTests(unittest.TestCase):
    def test_writes_pdf_and_manifest(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 5)
            pages = _run(root)

            self.assertEqual(pages, 2)
            with fitz.open(root / "contactsheet.pdf") as doc:
                self.assertEqual(doc.page_count, 2)

            manifest = _manifest(root)
            self.assertEqual(manifest["tool"], "contact-sheet")
            self.assertEqual(manifest["summary"]["status"], "ok")
            self.assertEqual(manifest["summary"]["images_found"], 5)
            self.assertEqual(manifest["summary"]["pages"], 2)
            self.assertEqual(manifest["inputs"]["grid"]["rows"], 2)
            self.assertEqual(manifest["action_counts"]["placed"], 5)
            self.assertEqual(manifest["action_counts"]["appended"], 2)
            self.assertEqual(manifest["action_counts"]["written"], 1)

            placements = [a for a in manifest["actions"] if a["action"] == "place_item"]
            self.assertEqual(
                [(a["caption"], a["page"], a["row"], a["col"]) for a in placements],
                [
                    ("photo_000.jpg", 1, 0, 0),
                    ("photo_001.jpg", 1, 0, 1),
                    ("photo_002.jpg", 1, 1, 0),
                    ("photo_003.jpg", 1, 1, 1),
                    ("photo_004.jpg", 2, 0, 0),
                ],
            )

    def test_dry_run_writes_nothing(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 9)
            pages = _run(root, dry_run=True)

            self.assertEqual(pages, 3)
            self.assertFalse((root / "contactsheet.pdf").exists())
            self.assertFalse((root / "manifest.json").exists())

    def test_dry_run_does_not_decode(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 3, corrupt=[0, 1, 2])
            self.assertEqual(_run(root, dry_run=True), 1)

    def test_corrupt_third_photo_fails_without_pdf(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 5, corrupt=[2])
            with self.assertRaises(DecodeError):
                _run(root)

            self.assertFalse((root / "contactsheet.pdf").exists())
            manifest = _manifest(root)
            self.assertEqual(manifest["summary"]["status"], "error")
            self.assertIn("photo_002.jpg", manifest["summary"]["error"])

    def test_invalid_grid_fails_before_scanning(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 2)
            with self.assertRaises(InvalidConfig):
                _run(root, columns=0)
            self.assertEqual(_manifest(root)["summary"]["images_found"], 0)

    def test_empty_folder_produces_no_pdf(self) -> None:
        with workspace_temp_dir("e2e") as root:
            self.assertEqual(_run(root), 0)
            self.assertFalse((root / "contactsheet.pdf").exists())
            self.assertEqual(_manifest(root)["summary"]["status"], "no-matches")

    def test_empty_folder_records_skipped_finalize(self) -> None:
        with workspace_temp_dir("e2e") as root:
            _run(root)
            manifest = _manifest(root)
            finalize = [a for a in manifest["actions"] if a["action"] == "finalize"]
            self.assertEqual(len(finalize), 1)
            self.assertEqual(finalize[0]["status"], "skipped")
            self.assertEqual(finalize[0]["reason"], "no pages")
            self.assertEqual(manifest["summary"]["pages"], 0)
            self.assertNotIn("appended", manifest["action_counts"])

    def test_existing_output_is_skipped_without_overwrite(self) -> None:
        with workspace_temp_dir("e2e") as root:
            write_photos(root, 2)
            out_pdf = root / "contactsheet.pdf"
            out_pdf.write_bytes(b"old")

            self.assertEqual(_run(root), 0)
            self.assertEqual(out_pdf.read_bytes(), b"old")
            self.assertEqual(_manifest(root)["summary"]["status"], "skipped")

            self.assertEqual(_run(root, overwrite=True), 1)
            with fitz.open(out_pdf) as doc:
                self.assertEqual(doc.page_count, 1)


class ManifestStructureTests(unittest.TestCase):
    def _recorder(self, dry_run: bool, verbosity: str = "normal", stream=None) -> ManifestRecorder:
        return ManifestRecorder(
            command="contact-sheet build --dry-run",
            options={"dry_run": dry_run},
            inputs={"in_dir": "photos"},
            outputs={"out_pdf": "photos/contactsheet.pdf"},
            dry_run=dry_run,
            verbosity=verbosity,
            console_stream=stream if stream is not None else io.StringIO(),
        )

    def test_build_manifest_has_expected_shape(self) -> None:
        recorder = self._recorder(dry_run=True)
        recorder.log("hello")
        recorder.record_placement(
            "dry-run",
            CellPosition(index=12, page=0, local_index=12, row=2, col=2),
            Path("photos/a.jpg"),
            "a.jpg",
        )

        manifest = recorder.build_manifest({"pages": 1})
        self.assertEqual(manifest["tool"], "contact-sheet")
        self.assertIn("started_at", manifest)
        self.assertIn("ended_at", manifest)
        self.assertEqual(manifest["action_counts"].get("dry-run"), 1)
        action = manifest["actions"][0]
        self.assertEqual((action["index"], action["page"], action["row"], action["col"]), (12, 1, 2, 2))

    def test_write_manifest_respects_dry_run(self) -> None:
        with workspace_temp_dir("manifest") as tmpdir:
            out_path = tmpdir / "manifest.json"
            self._recorder(dry_run=True).write_manifest(out_path, {"ok": True})
            self.assertFalse(out_path.exists())

    def test_write_manifest_writes_json(self) -> None:
        with workspace_temp_dir("manifest") as tmpdir:
            out_path = tmpdir / "sub" / "manifest.json"
            recorder = self._recorder(dry_run=False)
            recorder.add_action("append_page", "appended", page=1)
            recorder.write_manifest(out_path, {"pages": 1})

            loaded = json.loads(out_path.read_text(encoding="utf-8"))
            self.assertEqual(loaded["summary"]["pages"], 1)
            self.assertEqual(loaded["action_counts"].get("appended"), 1)

    def test_quiet_suppresses_info_but_prints_error(self) -> None:
        stream = io.StringIO()
        recorder = self._recorder(dry_run=True, verbosity="quiet", stream=stream)
        recorder.log("hello-info")
        recorder.log("hello-error", level="error")
        self.assertNotIn("hello-info", stream.getvalue())
        self.assertIn("hello-error", stream.getvalue())
        self.assertEqual(len(recorder.logs), 2)

    def test_verbose_prints_debug_with_level_prefix(self) -> None:
        stream = io.StringIO()
        recorder = self._recorder(dry_run=True, verbosity="verbose", stream=stream)
        recorder.log("hello-debug", level="debug")
        self.assertIn("[debug] hello-debug", stream.getvalue())

    def test_normal_hides_debug(self) -> None:
        stream = io.StringIO()
        recorder = self._recorder(dry_run=True, stream=stream)
        recorder.log("hello-debug", level="debug")
        self.assertEqual(stream.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
