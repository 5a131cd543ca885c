"""
Command-line interface for contact-sheet.

This file focuses on parsing arguments and dispatching to the real work.
Keeping this separate makes the code easier to read and test.
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .config import CONTACT_SHEET_KEYS, dump_default_config_yaml, resolve_config
from .utils import UserError, normalize_extensions, normalize_path


TOP_LEVEL_EXAMPLES = """Examples:
  python -m contact_sheet build --in_dir "photos"
  python -m contact_sheet build --in_dir "photos" --out_pdf "index.pdf" --columns 4 --overwrite
  python -m contact_sheet plan --in_dir "photos" --columns 5
"""

BUILD_EXAMPLES = """Examples:
  python -m contact_sheet build --in_dir "photos"
  python -m contact_sheet build --in_dir "photos" --out_pdf "out/index.pdf" --cell_width 400 --cell_height 300
  python -m contact_sheet build --in_dir "photos" --config "contact_sheet.yaml" --dry-run
  python -m contact_sheet build --dump-default-config
"""

PLAN_EXAMPLES = """Examples:
  python -m contact_sheet plan --in_dir "photos"
  python -m contact_sheet plan --in_dir "photos" --columns 3 --extensions ".jpg,.png"
"""


def _require_bool(value: Any, key: str) -> bool:
    """Require a strict boolean value from config/CLI merge output."""

    if isinstance(value, bool):
        return value
    raise UserError(f"{key} must be true or false.")


def _parse_formats(value: Any) -> Optional[List[str]]:
    """Decoder formats: a list, a comma string, or null/"any" for no restriction."""

    if value is None:
        return None
    if isinstance(value, str):
        if value.strip().lower() == "any":
            return None
        value = value.split(",")
    if not isinstance(value, list):
        raise UserError("decode_formats must be a list of Pillow format names or null.")
    formats = [str(name).strip().upper() for name in value if str(name).strip()]
    if not formats:
        raise UserError("decode_formats must name at least one format (or be null).")
    return formats


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Pick config keys the user actually passed on the command line."""

    raw_args = vars(args)
    return {key: raw_args[key] for key in CONTACT_SHEET_KEYS if key in raw_args}


def _build_effective_config(args: argparse.Namespace) -> tuple[Dict[str, Any], Path | None]:
    """Resolve defaults < YAML config < explicit CLI flags."""

    config_path = normalize_path(args.config) if hasattr(args, "config") else None
    return resolve_config(config_path, _config_overrides(args)), config_path


def _verbosity_from_args(args: argparse.Namespace) -> str:
    """Resolve global verbosity mode from top-level flags."""

    if getattr(args, "quiet", False):
        return "quiet"
    if getattr(args, "verbose", False):
        return "verbose"
    return "normal"


def _add_grid_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Optional YAML config with contact sheet settings.",
    )
    parser.add_argument(
        "--extensions",
        default=argparse.SUPPRESS,
        help='Comma separated input extensions (default: ".jpeg,.jpg").',
    )
    parser.add_argument(
        "--columns",
        type=int,
        default=argparse.SUPPRESS,
        help="Thumbnails per row (default: 5). Rows are floor(columns * 11 / 8.5).",
    )
    parser.add_argument(
        "--cell_width",
        type=int,
        default=argparse.SUPPRESS,
        help="Thumbnail width in pixels (default: 600).",
    )
    parser.add_argument(
        "--cell_height",
        type=int,
        default=argparse.SUPPRESS,
        help="Thumbnail height in pixels (default: 600).",
    )
    parser.add_argument(
        "--horizontal_margin",
        type=int,
        default=argparse.SUPPRESS,
        help="Gap between columns in pixels (default: 20).",
    )
    parser.add_argument(
        "--vertical_margin",
        type=int,
        default=argparse.SUPPRESS,
        help="Caption band under each row in pixels (default: 52).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contact-sheet",
        description="Lay out a folder of photos as a captioned thumbnail grid in a PDF.",
        epilog=TOP_LEVEL_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error console logs.",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug-level console logs.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Render the contact sheet PDF.",
        epilog=BUILD_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    build_parser.add_argument(
        "--in_dir",
        default=argparse.SUPPRESS,
        help="Folder of photos (required unless --dump-default-config).",
    )
    build_parser.add_argument(
        "--out_pdf",
        default=argparse.SUPPRESS,
        help="Output PDF path (default: in_dir\\contactsheet.pdf).",
    )
    build_parser.add_argument(
        "--dump-default-config",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Print default YAML config and exit.",
    )
    _add_grid_arguments(build_parser)
    build_parser.add_argument(
        "--font_path",
        default=argparse.SUPPRESS,
        help="TrueType font for captions (default: Pillow's bundled font).",
    )
    build_parser.add_argument(
        "--font_size",
        type=int,
        default=argparse.SUPPRESS,
        help="Caption font size in pixels (default: 40).",
    )
    build_parser.add_argument(
        "--decode_formats",
        default=argparse.SUPPRESS,
        help='Comma separated Pillow formats to accept, or "any" (default: JPEG).',
    )
    build_parser.add_argument(
        "--page_size",
        choices=["a4", "letter"],
        default=argparse.SUPPRESS,
        help="PDF page size (default: a4).",
    )
    build_parser.add_argument(
        "--page_inset_mm",
        type=float,
        default=argparse.SUPPRESS,
        help="Distance of the sheet from the page's top-left corner (default: 2).",
    )
    build_parser.add_argument(
        "--image_width_mm",
        type=float,
        default=argparse.SUPPRESS,
        help="Printed width of the sheet on the page (default: 206).",
    )
    build_parser.add_argument(
        "--jpeg_quality",
        type=int,
        default=argparse.SUPPRESS,
        help="JPEG quality used to embed pages (default: 95).",
    )
    build_parser.add_argument(
        "--overwrite",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Overwrite an existing output PDF.",
    )
    build_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Show the layout without decoding photos or writing files.",
    )
    build_parser.add_argument(
        "--manifest",
        default=argparse.SUPPRESS,
        help="Manifest path (default: out_pdf folder\\manifest.json).",
    )

    plan_parser = subparsers.add_parser(
        "plan",
        help="Print which page, row and column each photo will use.",
        epilog=PLAN_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    plan_parser.add_argument("--in_dir", required=True, help="Folder of photos.")
    _add_grid_arguments(plan_parser)

    return parser


def _command_string(argv: list[str]) -> str:
    """Reconstruct a command string for the manifest."""

    # list2cmdline produces a Windows-friendly command representation.
    return subprocess.list2cmdline(argv)


def _command_argv_for_manifest(argv: list[str] | None) -> list[str]:
    """Choose argv used to record manifest command faithfully."""

    if argv is None:
        return list(sys.argv)
    return [sys.argv[0], *argv]


def _run_build(args: argparse.Namespace, argv: list[str] | None, verbosity: str) -> int:
    if getattr(args, "dump_default_config", False):
        print(dump_default_config_yaml())
        return 0

    if not hasattr(args, "in_dir"):
        raise UserError("build requires --in_dir unless --dump-default-config is used.")

    from .builder import create_contact_sheet

    effective, config_path = _build_effective_config(args)
    in_dir = normalize_path(args.in_dir)
    out_pdf = (
        normalize_path(args.out_pdf)
        if hasattr(args, "out_pdf")
        else in_dir / str(effective["output_name"])
    )
    manifest_path = (
        normalize_path(str(effective["manifest"]))
        if effective.get("manifest")
        else out_pdf.parent / "manifest.json"
    )
    font_path = normalize_path(str(effective["font_path"])) if effective.get("font_path") else None

    options = dict(effective)
    options["in_dir"] = str(in_dir)
    options["out_pdf"] = str(out_pdf)
    options["version"] = __version__
    options["verbosity"] = verbosity
    if config_path is not None:
        options["config_path"] = str(config_path)

    create_contact_sheet(
        in_dir=in_dir,
        out_pdf=out_pdf,
        extensions=normalize_extensions(effective["extensions"]),
        columns=effective["columns"],
        cell_width=effective["cell_width"],
        cell_height=effective["cell_height"],
        horizontal_margin=effective["horizontal_margin"],
        vertical_margin=effective["vertical_margin"],
        font_path=font_path,
        font_size=effective["font_size"],
        decode_formats=_parse_formats(effective["decode_formats"]),
        page_size=effective["page_size"],
        page_inset_mm=effective["page_inset_mm"],
        image_width_mm=effective["image_width_mm"],
        jpeg_quality=effective["jpeg_quality"],
        overwrite=_require_bool(effective["overwrite"], "config.overwrite"),
        dry_run=_require_bool(effective["dry_run"], "config.dry_run"),
        manifest_path=manifest_path,
        command_string=_command_string(_command_argv_for_manifest(argv)),
        options=options,
    )
    return 0


def _run_plan(args: argparse.Namespace) -> int:
    from .builder import plan_items, scan_items
    from .layout import compute_grid

    effective, _ = _build_effective_config(args)
    grid = compute_grid(
        columns=effective["columns"],
        cell_width=effective["cell_width"],
        cell_height=effective["cell_height"],
        horizontal_margin=effective["horizontal_margin"],
        vertical_margin=effective["vertical_margin"],
    )
    items = scan_items(normalize_path(args.in_dir), normalize_extensions(effective["extensions"]))

    print("index\tpage\trow\tcol\tcaption")
    for cell, item in plan_items(items, grid):
        print(f"{cell.index}\t{cell.page + 1}\t{cell.row}\t{cell.col}\t{item.caption}")
    print(
        f"{len(items)} image(s), {grid.page_count(len(items))} page(s), "
        f"{grid.columns}x{grid.rows} grid ({grid.capacity} per page)."
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        verbosity = _verbosity_from_args(args)

        if args.command == "build":
            return _run_build(args, argv, verbosity)

        if args.command == "plan":
            return _run_plan(args)

        raise UserError("Unknown command. Use --help for usage.")
    except UserError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
