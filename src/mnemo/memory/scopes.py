"""Scoped memories: session, project and global levels as one tagged record.

A project memory aggregates session memories that describe the same pattern;
a global memory aggregates project memories. Aggregation is a pure merge:
counts add up, session ids and tags are unioned, the seen-window widens, and
the children's ids are recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mnemo.core.config import PromotionThresholds
from mnemo.core.models import Observation, new_id, utcnow
from mnemo.storage.memories import days_between

SCOPES = ("session", "project", "global")
GLOBAL_MIN_SESSIONS = 2


@dataclass
class ScopedMemory:
    scope: str  # "session" | "project" | "global"
    observation: Observation
    session_id: str | None = None
    project_id: str | None = None
    child_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if self.scope not in SCOPES:
            raise ValueError(f"Unknown memory scope: {self.scope!r}")
        if self.scope == "session" and not self.session_id:
            raise ValueError("session memories require session_id")
        if self.scope == "project" and not self.project_id:
            raise ValueError("project memories require project_id")

    def days_since_creation(self, now: datetime | None = None) -> int:
        return days_between(self.created_at, now or utcnow())


@dataclass
class Eligibility:
    eligible: bool
    current_count: int
    required_count: int
    current_days: int
    required_days: int
    reason: str | None = None


def session_memory(observation: Observation, session_id: str) -> ScopedMemory:
    return ScopedMemory(scope="session", observation=observation, session_id=session_id)


def _merge(children: list[ScopedMemory]) -> Observation:
    if not children:
        raise ValueError("Cannot aggregate an empty list of memories")

    head = children[0].observation
    sessions: list[str] = []
    tags: list[str] = []
    metadata: dict[str, Any] | None = None
    first_seen, last_seen = head.first_seen, head.last_seen
    total = 0

    for child in children:
        obs = child.observation
        total += obs.count
        sessions.extend(s for s in obs.source_session_ids if s not in sessions)
        tags.extend(t for t in obs.tags or [] if t not in tags)
        first_seen = min(first_seen, obs.first_seen)
        last_seen = max(last_seen, obs.last_seen)
        if obs.metadata:
            metadata = {**(metadata or {}), **obs.metadata}

    return Observation(
        text=head.text,
        category=head.category,
        count=total,
        status="pending",
        source_session_ids=sessions,
        first_seen=first_seen,
        last_seen=last_seen,
        tags=tags or None,
        metadata=metadata,
    )


def aggregate_to_project(project_id: str, sessions: list[ScopedMemory]) -> ScopedMemory:
    """Merge session memories of one pattern into a project memory."""
    return ScopedMemory(
        scope="project",
        observation=_merge(sessions),
        project_id=project_id,
        child_ids=[m.id for m in sessions],
    )


def aggregate_to_global(projects: list[ScopedMemory]) -> ScopedMemory:
    """Merge project memories of one pattern into a global memory."""
    return ScopedMemory(
        scope="global",
        observation=_merge(projects),
        child_ids=[m.id for m in projects],
    )


def check_eligibility(
    memory: ScopedMemory,
    thresholds: PromotionThresholds | None = None,
    now: datetime | None = None,
) -> Eligibility:
    """Whether a scoped memory has enough sightings and age to be promoted.

    Global memories must also span at least two source sessions.
    """
    thresholds = thresholds or PromotionThresholds()
    count = memory.observation.count
    days = memory.days_since_creation(now)
    required_count = thresholds.core_min_count
    required_days = thresholds.core_min_days

    shortages = []
    if count < required_count:
        shortages.append(f"count {count}/{required_count}")
    if days < required_days:
        shortages.append(f"days {days}/{required_days}")

    result = Eligibility(
        eligible=not shortages,
        current_count=count,
        required_count=required_count,
        current_days=days,
        required_days=required_days,
    )
    if shortages:
        result.reason = f"Not eligible for promotion: {', '.join(shortages)}"
    elif memory.scope == "global" and len(memory.observation.source_session_ids) < GLOBAL_MIN_SESSIONS:
        result.eligible = False
        result.reason = (
            "Not eligible for core promotion: global memory must span at least "
            f"{GLOBAL_MIN_SESSIONS} source sessions"
        )
    return result
