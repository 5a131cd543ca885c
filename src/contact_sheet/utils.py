"""
Shared errors and validation helpers.

This module keeps the "sharp edges" (validation and input discovery) in one
place so the layout and rendering code can stay focused on pixels.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List


class UserError(Exception):
    """Raised for user-facing problems that should show a clear message."""


class InvalidConfig(UserError):
    """Grid, font, or page settings that cannot produce a contact sheet."""


class DecodeError(UserError):
    """A source image could not be opened or decoded."""


class WriteError(UserError):
    """A page could not be added to the document, or the document not saved."""


def normalize_path(value: str) -> Path:
    """
    Convert user input to a Path.

    We do not resolve() here because we want to preserve relative paths in
    manifests and error messages.
    """

    return Path(value).expanduser()


def ensure_dir(path: Path, dry_run: bool) -> None:
    """Create a directory if needed, unless this is a dry-run."""

    if dry_run:
        return
    path.mkdir(parents=True, exist_ok=True)


def ensure_input_dir(path: Path, label: str) -> Path:
    """Validate that a path exists and is a directory."""

    if not path.exists():
        raise UserError(f"{label} not found: {path}")
    if not path.is_dir():
        raise UserError(f"{label} is not a directory: {path}")
    return path


def ensure_file_path(path: Path, label: str) -> None:
    """Ensure a path is a file path (not an existing directory)."""

    if path.exists() and path.is_dir():
        raise UserError(f"{label} is a directory, not a file: {path}")


def _require_int(value: object, label: str) -> int:
    # bool is an int subclass; "columns: true" in YAML is a mistake, not 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfig(f"{label} must be an integer, got {value!r}.")
    return value


def validate_positive_int(value: object, label: str) -> int:
    """Common validation for options like --columns or --cell_width."""

    number = _require_int(value, label)
    if number <= 0:
        raise InvalidConfig(f"{label} must be a positive integer.")
    return number


def validate_non_negative_int(value: object, label: str) -> int:
    """Margins may be zero but never negative."""

    number = _require_int(value, label)
    if number < 0:
        raise InvalidConfig(f"{label} must be >= 0.")
    return number


def normalize_extensions(extensions: Iterable[str]) -> List[str]:
    """
    Lower-case extensions and add the leading dot when it is missing.

    Accepts either a list (YAML) or a comma separated string (CLI).
    """

    if isinstance(extensions, str):
        extensions = extensions.split(",")
    elif not isinstance(extensions, (list, tuple)):
        raise UserError(
            f"Extensions must be a list or a comma separated string, got {extensions!r}."
        )

    normalized: List[str] = []
    for raw in extensions:
        if not isinstance(raw, str):
            raise UserError(f"Extensions must be strings, got {raw!r}.")
        value = raw.strip().lower()
        if not value:
            continue
        if not value.startswith("."):
            value = f".{value}"
        if value not in normalized:
            normalized.append(value)

    if not normalized:
        raise UserError("At least one image extension is required.")
    return normalized


def collect_image_files(in_dir: Path, extensions: Iterable[str]) -> List[Path]:
    """
    Return image files directly inside in_dir, sorted by file name.

    The sorted order is the input order of the contact sheet, so it must be
    stable across runs and platforms.
    """

    wanted = set(normalize_extensions(extensions))
    return sorted(
        (
            path
            for path in in_dir.iterdir()
            if path.is_file() and path.suffix.lower() in wanted
        ),
        key=lambda path: path.name,
    )
