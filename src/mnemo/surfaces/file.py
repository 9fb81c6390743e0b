"""Markdown file destination for core memories."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from mnemo.core.errors import DestinationError, ErrorCode, atomic_write
from mnemo.surfaces.base import CoreMemoryDestination


def separator_for(existing: str) -> str:
    """Blank-line separator to put between ``existing`` content and a new block."""
    if not existing:
        return ""
    if existing.endswith("\n"):
        return "\n"
    return "\n\n"


@dataclass
class MarkdownFileDestination(CoreMemoryDestination):
    """Append core memories to a markdown file such as CLAUDE.md or AGENTS.md."""

    path: Path = field(default_factory=Path)

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser()
        if not str(self.path) or self.path == Path():
            msg = "path is required"
            raise ValueError(msg)
        if not self.name:
            self.name = self.path.stem.lower()

    def get_path(self) -> Path:
        return self.path

    def read(self) -> str:
        if not self.path.exists():
            return ""
        try:
            return self.path.read_text()
        except OSError as exc:
            raise DestinationError(
                f"Failed to read {self.path}: {exc}",
                ErrorCode.FILE_WRITE_FAILED,
                {"destination": self.name, "path": str(self.path)},
            ) from exc

    def append(self, text: str) -> None:
        existing = self.read()
        try:
            atomic_write(self.path, existing + separator_for(existing) + text)
        except OSError as exc:
            raise DestinationError(
                f"Failed to write {self.path}: {exc}",
                ErrorCode.FILE_WRITE_FAILED,
                {"destination": self.name, "path": str(self.path)},
            ) from exc


def configured_destinations(settings) -> list[CoreMemoryDestination]:
    """Destinations enabled in ``settings``, in a stable order."""
    destinations: list[CoreMemoryDestination] = []
    if settings.claude_md_enabled:
        destinations.append(MarkdownFileDestination(name="claude-md", path=settings.claude_md_path))
    if settings.agents_md_enabled:
        destinations.append(MarkdownFileDestination(name="agents-md", path=settings.agents_md_path))
    return destinations
