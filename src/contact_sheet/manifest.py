"""
Run logging and the JSON manifest.

Why this exists:
- Every build writes a JSON manifest with its options, the photos it placed,
  the pages it flushed, and a log timeline.
- Console logging goes through one place so messages honour --quiet and
  --verbose consistently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
import sys
from typing import Any, Dict, List, TextIO

from .layout import CellPosition
from .utils import ensure_dir


TOOL_NAME = "contact-sheet"

LEVELS_BY_VERBOSITY = {
    "quiet": {"error"},
    "normal": {"info", "warning", "error"},
    "verbose": {"debug", "info", "warning", "error"},
}


def _iso_now() -> str:
    """Return an ISO-8601 timestamp in UTC."""

    return datetime.now(timezone.utc).isoformat()


@dataclass
class ManifestRecorder:
    """Collect logs and actions for one run, then write them as JSON."""

    command: str
    options: Dict[str, Any]
    inputs: Dict[str, Any]
    outputs: Dict[str, Any]
    dry_run: bool
    tool_version: str = "0.0.0"
    verbosity: str = "normal"
    console_stream: TextIO = field(default_factory=lambda: sys.stderr)
    started_at: str = field(default_factory=_iso_now)
    logs: List[Dict[str, Any]] = field(default_factory=list)
    actions: List[Dict[str, Any]] = field(default_factory=list)

    def log(self, message: str, level: str = "info") -> None:
        """Record a log message and print it if the verbosity allows."""

        self.logs.append({"timestamp": _iso_now(), "level": level, "message": message})

        shown = LEVELS_BY_VERBOSITY.get(self.verbosity, LEVELS_BY_VERBOSITY["normal"])
        if level in shown:
            rendered = f"[{level}] {message}" if self.verbosity == "verbose" else message
            print(rendered, file=self.console_stream)

    def add_action(self, action: str, status: str, **details: Any) -> None:
        """
        Add an action record.

        Action types: place_item, append_page, finalize, contact_sheet.
        """

        entry: Dict[str, Any] = {
            "timestamp": _iso_now(),
            "action": action,
            "status": status,
        }
        entry.update(details)
        self.actions.append(entry)

    def record_placement(
        self,
        status: str,
        cell: CellPosition,
        input_path: Path,
        caption: str,
    ) -> None:
        """Record where one photo landed (page numbers are 1-based here)."""

        self.add_action(
            action="place_item",
            status=status,
            index=cell.index,
            page=cell.page + 1,
            row=cell.row,
            col=cell.col,
            input=str(input_path),
            caption=caption,
        )

    def _summarize_actions(self) -> Dict[str, int]:
        """Count actions by status (placed, appended, dry-run, ...)."""

        counts: Dict[str, int] = {}
        for action in self.actions:
            status = action.get("status", "unknown")
            counts[status] = counts.get(status, 0) + 1
        return counts

    def build_manifest(self, summary: Dict[str, Any]) -> Dict[str, Any]:
        """Assemble the final manifest structure."""

        return {
            "tool": TOOL_NAME,
            "version": self.tool_version,
            "command": self.command,
            "started_at": self.started_at,
            "ended_at": _iso_now(),
            "options": self.options,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "summary": summary,
            "action_counts": self._summarize_actions(),
            "actions": self.actions,
            "logs": self.logs,
        }

    def write_manifest(self, path: Path, summary: Dict[str, Any]) -> None:
        """Write the manifest JSON, unless this is a dry-run."""

        if self.dry_run:
            self.log(f"[dry-run] Would write manifest to {path}")
            return

        ensure_dir(path.parent, dry_run=False)
        manifest = self.build_manifest(summary)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(manifest, handle, indent=2, ensure_ascii=True)
