"""Claude Code session logs: JSONL → Transcripts.

Claude Code writes one JSONL file per session under
``~/.claude/projects/<project-slug>/<session-id>.jsonl``. Each line is an
event; the ones we care about carry a ``message`` with a ``role`` and a
``content`` that is either a string or a list of typed blocks:

- ``text``: assistant or user prose
- ``tool_use``: ``name``, ``input``, ``id``
- ``tool_result``: ``tool_use_id``, ``content``, ``is_error`` (sent back in a
  user event, after the assistant event that made the call)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from mnemo.core.models import Message, ToolUse, Transcript, new_id, parse_timestamp
from mnemo.sources.base import TranscriptSource, expand_path

logger = logging.getLogger(__name__)


@dataclass
class ParsedConversation:
    messages: list[Message] = field(default_factory=list)
    session_id: str | None = None
    cwd: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None


def _result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            block.get("text", "") for block in content if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def parse_conversation(text: str) -> ParsedConversation:
    """Parse a Claude Code JSONL log. Malformed lines are skipped."""
    parsed = ParsedConversation()
    pending: dict[str, ToolUse] = {}

    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except ValueError:
            continue
        if not isinstance(event, dict):
            continue

        if parsed.session_id is None and event.get("sessionId"):
            parsed.session_id = event["sessionId"]
        if parsed.cwd is None and event.get("cwd"):
            parsed.cwd = event["cwd"]

        timestamp = event.get("timestamp")
        timestamp = parse_timestamp(timestamp) if isinstance(timestamp, str) else None
        if timestamp is not None:
            if parsed.created_at is None:
                parsed.created_at = timestamp
            parsed.modified_at = timestamp

        message = event.get("message")
        if not isinstance(message, dict) or not message.get("role") or not message.get("content"):
            continue

        content = message["content"]
        texts: list[str] = []
        tool_uses: list[ToolUse] = []
        if isinstance(content, str):
            texts.append(content)
        elif isinstance(content, list):
            for block in content:
                if not isinstance(block, dict):
                    continue
                kind = block.get("type")
                if kind == "text" and isinstance(block.get("text"), str):
                    texts.append(block["text"])
                elif kind == "tool_use":
                    use = ToolUse(
                        name=str(block.get("name") or "unknown"),
                        input=block.get("input") if isinstance(block.get("input"), dict) else {},
                        id=str(block.get("id") or new_id()),
                    )
                    pending[use.id] = use
                    tool_uses.append(use)
                elif kind == "tool_result":
                    use = pending.get(str(block.get("tool_use_id")))
                    if use is not None:
                        use.result = _result_text(block.get("content"))
                        use.success = not block.get("is_error", False)

        body = "\n\n".join(texts)
        if body or tool_uses:
            parsed.messages.append(
                Message(role=message["role"], content=body, tool_uses=tool_uses, timestamp=timestamp)
            )

    return parsed


def render_content(messages: list[Message]) -> str:
    return "\n\n".join(
        f"[{'User' if m.role == 'user' else 'Assistant'}]: {m.content}" for m in messages
    )


class ClaudeCodeSource(TranscriptSource):
    """Reads ``<base>/<project>/*.jsonl`` session logs."""

    name = "claude-code"

    def __init__(self, base_path: str | Path):
        self.base_path = expand_path(base_path)

    def is_available(self) -> bool:
        return self.base_path.is_dir()

    def get_sessions(self, since: datetime | None = None) -> list[Transcript]:
        if not self.is_available():
            return []

        try:
            paths = sorted(self.base_path.glob("*/*.jsonl"))
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
        """Parse one session file; None if unreadable or empty."""
        try:
            text = path.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable session %s: %s", path, exc)
            return None

        parsed = parse_conversation(text)
        if not parsed.messages:
            return None

        timestamp = parsed.modified_at or parsed.created_at
        if timestamp is None:
            timestamp = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

        return Transcript(
            id=path.stem,
            tool="claude-code",
            timestamp=timestamp,
            content=render_content(parsed.messages),
            file_path=str(path),
            project_path=parsed.cwd,
            messages=parsed.messages,
        )
