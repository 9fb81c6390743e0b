"""Core data models for mnemo."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

CATEGORIES = ("preference", "pattern", "workflow", "tool-choice", "style", "other")

OBSERVATION_STATUSES = (
    "pending",
    "approved",
    "denied",
    "promoted-to-long-term",
    "promoted-to-core",
)

MEMORY_STATUSES = ("approved", "scheduled-for-core", "denied")

# Forward order of the observation lifecycle; "denied" sits outside it.
_STATUS_RANK = {
    "pending": 0,
    "approved": 1,
    "promoted-to-long-term": 2,
    "promoted-to-core": 3,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def can_transition(current: str, new: str) -> bool:
    """Return True if an observation may move from ``current`` to ``new``.

    Status only advances along pending → approved → promoted-to-long-term →
    promoted-to-core, or moves sideways to denied. Denied is terminal.
    Re-setting the current status is allowed.
    """
    if current == new:
        return True
    if current == "denied":
        return False
    if new == "denied":
        return True
    return _STATUS_RANK[new] > _STATUS_RANK[current]


@dataclass
class ToolUse:
    """A single tool invocation inside an assistant message."""

    name: str
    input: dict[str, Any] = field(default_factory=dict)
    result: str | None = None
    success: bool | None = None
    id: str = field(default_factory=new_id)


@dataclass
class Message:
    """One conversation turn."""

    role: str  # "user" | "assistant"
    content: str = ""
    tool_uses: list[ToolUse] = field(default_factory=list)
    timestamp: datetime | None = None


@dataclass
class Transcript:
    """Transcript metadata plus its parsed message sequence."""

    id: str
    tool: str
    timestamp: datetime
    content: str = ""
    file_path: str = ""
    project_path: str | None = None
    messages: list[Message] = field(default_factory=list)


@dataclass
class Observation:
    """A single detected pattern statement."""

    text: str
    category: str = "other"
    count: int = 1
    status: str = "pending"
    source_session_ids: list[str] = field(default_factory=list)
    first_seen: datetime = field(default_factory=utcnow)
    last_seen: datetime = field(default_factory=utcnow)
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    id: str = field(default_factory=new_id)

    def add_session(self, session_id: str) -> bool:
        """Union a session id into the contributing set. Returns True if added."""
        if session_id in self.source_session_ids:
            return False
        self.source_session_ids.append(session_id)
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "count": self.count,
            "status": self.status,
            "source_session_ids": list(self.source_session_ids),
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "tags": list(self.tags) if self.tags is not None else None,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Observation:
        first_seen = parse_timestamp(data.get("first_seen")) or utcnow()
        last_seen = parse_timestamp(data.get("last_seen")) or first_seen
        return cls(
            id=data["id"],
            text=data["text"],
            category=data.get("category") or "other",
            count=int(data.get("count", 1)),
            status=data.get("status", "pending"),
            source_session_ids=list(data.get("source_session_ids", [])),
            first_seen=first_seen,
            last_seen=last_seen,
            tags=data.get("tags"),
            metadata=data.get("metadata"),
        )

    def copy(self) -> Observation:
        """Detached snapshot (lists and dicts are copied)."""
        return Observation.from_dict(self.to_dict())


@dataclass
class LongTermMemory:
    """An observation promoted past the long-term threshold."""

    observation: Observation
    promoted_at: datetime = field(default_factory=utcnow)
    status: str = "approved"  # "approved" | "scheduled-for-core" | "denied"
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "observation": self.observation.to_dict(),
            "promoted_at": self.promoted_at.isoformat(),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LongTermMemory:
        return cls(
            id=data["id"],
            observation=Observation.from_dict(data["observation"]),
            promoted_at=parse_timestamp(data.get("promoted_at")) or utcnow(),
            status=data.get("status", "approved"),
        )
