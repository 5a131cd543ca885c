"""
Configuration helpers for YAML-backed build options.

Precedence is defaults < YAML file < explicit CLI flags. The YAML file may use
the keys at the root or wrap them in a `contact_sheet:` mapping.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml

from .utils import UserError


CONFIG_SECTION = "contact_sheet"

DEFAULT_CONTACT_SHEET: Dict[str, Any] = {
    "extensions": [".jpeg", ".jpg"],
    "output_name": "contactsheet.pdf",
    "columns": 5,
    "cell_width": 600,
    "cell_height": 600,
    "horizontal_margin": 20,
    "vertical_margin": 52,
    "font_path": None,
    "font_size": 40,
    "decode_formats": ["JPEG"],
    "page_size": "a4",
    "page_inset_mm": 2.0,
    "image_width_mm": 206.0,
    "jpeg_quality": 95,
    "overwrite": False,
    "dry_run": False,
    "manifest": None,
}

CONTACT_SHEET_KEYS = set(DEFAULT_CONTACT_SHEET.keys())


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file into a dictionary."""

    if not path.is_file():
        raise UserError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserError(f"Failed to parse YAML config {path}: {exc}") from exc
    except OSError as exc:
        raise UserError(f"Failed to read config {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise UserError(f"Config {path} must contain a YAML mapping/object at top level.")
    return loaded


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries where overlay values win."""

    merged = deepcopy(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def validate_keys(cfg: Dict[str, Any], allowed: set[str], ctx: str) -> None:
    """Fail fast on unknown keys so typos do not silently fall back to defaults."""

    unknown = sorted(key for key in cfg.keys() if key not in allowed)
    if unknown:
        allowed_list = ", ".join(sorted(allowed))
        unknown_list = ", ".join(unknown)
        raise UserError(
            f"Unknown keys in {ctx}: {unknown_list}. Allowed keys: {allowed_list}."
        )


def extract_section(loaded: Dict[str, Any]) -> Dict[str, Any]:
    """Support either root config keys or a contact_sheet wrapper."""

    if CONFIG_SECTION in loaded:
        section = loaded[CONFIG_SECTION]
        if not isinstance(section, dict):
            raise UserError(f"config.{CONFIG_SECTION} must be a mapping/object.")
        validate_keys(section, CONTACT_SHEET_KEYS, f"config.{CONFIG_SECTION}")
        return section

    validate_keys(loaded, CONTACT_SHEET_KEYS, "config")
    return loaded


def resolve_config(
    config_path: Path | None,
    overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """Merge defaults, an optional YAML file, and explicit overrides."""

    effective = deep_merge(DEFAULT_CONTACT_SHEET, {})
    if config_path is not None:
        effective = deep_merge(effective, extract_section(load_yaml(config_path)))

    validate_keys(overrides, CONTACT_SHEET_KEYS, "overrides")
    return deep_merge(effective, overrides)


def dump_default_config_yaml() -> str:
    """Serialize wrapped defaults as YAML."""

    return yaml.safe_dump({CONFIG_SECTION: DEFAULT_CONTACT_SHEET}, sort_keys=False).rstrip()
