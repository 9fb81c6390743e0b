"""File interaction tracker: frequently modified files and hotspots."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.core.models import Message, Observation, Transcript

FILE_TOOL_NAMES = frozenset({"read", "edit", "write", "bash"})
READ_OPERATIONS = frozenset({"read", "Read"})
WRITE_OPERATIONS = frozenset({"edit", "write", "Edit", "Write"})
PATH_KEYS = ("file_path", "filePath", "path")

MIN_FREQUENT_EDITS = 3
HOTSPOT_EDIT_THRESHOLD = 10
MAX_TOP_FILES = 5


@dataclass
class _FileStats:
    path: str
    read_count: int = 0
    write_count: int = 0
    edit_count: int = 0
    total: int = 0

    def as_metadata(self) -> dict[str, Any]:
        return {
            "file_path": self.path,
            "read_count": self.read_count,
            "write_count": self.write_count,
            "edit_count": self.edit_count,
            "total_interactions": self.total,
        }


def extract_file_path(tool_input: dict[str, Any] | None) -> str | None:
    """First non-blank string under file_path, filePath or path."""
    if not tool_input:
        return None
    for key in PATH_KEYS:
        value = tool_input.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and drop one trailing slash."""
    collapsed = re.sub(r"/+", "/", path)
    if collapsed.endswith("/"):
        collapsed = collapsed[:-1]
    return collapsed


class FileInteractionTracker(PatternAnalyzer):
    name = "file-interaction"

    def analyze(self, transcript: Transcript, messages: list[Message]) -> list[Observation]:
        stats = self._collect_stats(messages)

        observations: list[Observation] = []
        for stat in stats.values():
            if stat.edit_count >= MIN_FREQUENT_EDITS:
                observations.append(
                    self.draft(
                        f'File "{stat.path}" modified {stat.edit_count} times in session',
                        "pattern",
                        transcript,
                        stat.as_metadata(),
                    )
                )
        for stat in stats.values():
            if stat.edit_count >= HOTSPOT_EDIT_THRESHOLD:
                observations.append(
                    self.draft(
                        f'Hotspot detected: "{stat.path}" has {stat.edit_count} edits (heavily modified)',
                        "pattern",
                        transcript,
                        {**stat.as_metadata(), "is_hotspot": True},
                    )
                )
        top = self._top_files_observation(stats, transcript)
        if top is not None:
            observations.append(top)
        return observations

    def _collect_stats(self, messages: list[Message]) -> dict[str, _FileStats]:
        stats: dict[str, _FileStats] = {}
        for message in messages:
            for use in message.tool_uses:
                if use.name.lower() not in FILE_TOOL_NAMES:
                    continue
                raw = extract_file_path(use.input)
                if raw is None:
                    continue
                path = normalize_path(raw)
                stat = stats.setdefault(path, _FileStats(path=path))
                stat.total += 1
                if use.name in READ_OPERATIONS:
                    stat.read_count += 1
                elif use.name in WRITE_OPERATIONS:
                    stat.write_count += 1
                    stat.edit_count += 1
        return stats

    def _top_files_observation(
        self, stats: dict[str, _FileStats], transcript: Transcript
    ) -> Observation | None:
        if len(stats) < 2:
            return None

        top = sorted(stats.values(), key=lambda s: s.total, reverse=True)[:MAX_TOP_FILES]
        if top[0].total < MIN_FREQUENT_EDITS:
            return None

        listing = ", ".join(f"{s.path} ({s.total})" for s in top)
        return self.draft(
            f"Most active files: {listing}",
            "pattern",
            transcript,
            {
                "file_path": ",".join(s.path for s in top),
                "read_count": sum(s.read_count for s in top),
                "write_count": sum(s.write_count for s in top),
                "edit_count": sum(s.edit_count for s in top),
                "total_interactions": sum(s.total for s in top),
                "top_files": [
                    {"path": s.path, "interactions": s.total, "edits": s.edit_count} for s in top
                ],
            },
        )
