"""OpenCode session files: JSON → Transcripts.

OpenCode keeps one JSON document per session under
``~/.local/share/opencode/storage/session/<project-hash>/<session-id>.json``::

    {
      "id": "...",
      "createdAt": "2026-03-01T10:00:00Z",
      "modifiedAt": "2026-03-01T10:20:00Z",
      "messages": [{"role": "user", "content": "...", "timestamp": "..."}]
    }

Messages carry plain text only, so OpenCode transcripts feed the oracle but
give the tool analyzers nothing to count.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from mnemo.core.models import Message, Transcript, parse_timestamp
from mnemo.sources.base import TranscriptSource, expand_path
from mnemo.sources.claude_code import render_content

logger = logging.getLogger(__name__)


def parse_session(data: dict) -> list[Message]:
    """Text messages from an OpenCode session document; malformed entries are skipped."""
    messages = []
    for entry in data.get("messages") or []:
        if not isinstance(entry, dict) or entry.get("role") not in ("user", "assistant"):
            continue
        content = entry.get("content")
        if not isinstance(content, str) or not content:
            continue
        timestamp = entry.get("timestamp")
        messages.append(
            Message(
                role=entry["role"],
                content=content,
                timestamp=parse_timestamp(timestamp) if isinstance(timestamp, str) else None,
            )
        )
    return messages


class OpenCodeSource(TranscriptSource):
    """Reads ``<base>/<project>/*.json`` session documents."""

    name = "opencode"

    def __init__(self, base_path: str | Path):
        self.base_path = expand_path(base_path)

    def is_available(self) -> bool:
        return self.base_path.is_dir()

    def get_sessions(self, since: datetime | None = None) -> list[Transcript]:
        if not self.is_available():
            return []

        try:
            paths = sorted(p for p in self.base_path.glob("*/*.json") if not p.name.startswith("."))
        except OSError as exc:
            logger.warning("Cannot list sessions under %s: %s", self.base_path, exc)
            return []

        transcripts = []
        for path in paths:
            transcript = self.load_transcript(path)
            if transcript is None:
                continue
            if since is not None and transcript.timestamp < since:
                continue
            transcripts.append(transcript)

        transcripts.sort(key=lambda t: t.timestamp, reverse=True)
        return transcripts

    def load_transcript(self, path: Path) -> Transcript | None:
        """Parse one session file; None if unreadable, malformed or empty."""
        try:
            data = json.loads(path.read_text())
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.warning("Skipping unreadable session %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None

        messages = parse_session(data)
        if not messages:
            return None

        created = data.get("createdAt")
        modified = data.get("modifiedAt")
        timestamp = (
            (parse_timestamp(modified) if isinstance(modified, str) else None)
            or (parse_timestamp(created) if isinstance(created, str) else None)
            or datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        )

        return Transcript(
            id=path.stem,
            tool="opencode",
            timestamp=timestamp,
            content=render_content(messages),
            file_path=str(path),
            project_path=str(path.parent),
            messages=messages,
        )
