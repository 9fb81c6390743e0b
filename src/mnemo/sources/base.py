"""Abstract base class for transcript sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from mnemo.core.models import Transcript


class TranscriptSource(ABC):
    """Where transcripts come from (a coding assistant's session logs).

    Sources never raise for ordinary problems such as a missing directory
    or an unreadable file: they return what they could read.
    """

    name: str = ""

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    def get_sessions(self, since: datetime | None = None) -> list[Transcript]:
        """Transcripts with ``timestamp >= since``, newest first."""
        ...


@dataclass
class StaticSource(TranscriptSource):
    """In-memory source over a fixed list of transcripts."""

    name: str = "static"
    transcripts: list[Transcript] = field(default_factory=list)
    available: bool = True

    def is_available(self) -> bool:
        return self.available

    def get_sessions(self, since: datetime | None = None) -> list[Transcript]:
        selected = [t for t in self.transcripts if since is None or t.timestamp >= since]
        return sorted(selected, key=lambda t: t.timestamp, reverse=True)


def expand_path(path: str | Path) -> Path:
    """Expand user home directory and resolve path."""
    return Path(path).expanduser().resolve()
