"""Memory hierarchy: promotion between observation, long-term and core levels.

::

    pending --approve--> approved --promote (count >= T1)--> long-term (approved)
    long-term (approved) --promote (count >= T2, age >= D days)--> scheduled-for-core
    any --deny--> denied  (terminal)

Threshold shortfalls come back as ``PromotionResult`` values, not exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from mnemo.core.config import PromotionThresholds
from mnemo.core.errors import MnemoError, StoreError
from mnemo.core.models import LongTermMemory, Observation, utcnow
from mnemo.storage.memories import LongTermMemoryStore
from mnemo.storage.observations import ObservationStore
from mnemo.surfaces.base import CoreMemoryDestination

logger = logging.getLogger(__name__)


@dataclass
class Shortfall:
    """A threshold that was not met."""

    kind: str  # "count" | "days"
    current: int
    required: int


@dataclass
class PromotionResult:
    success: bool
    reason: str | None = None
    memory_id: str | None = None
    written_to: list[str] = field(default_factory=list)
    shortfalls: list[Shortfall] = field(default_factory=list)


@dataclass
class LevelCounts:
    pending: int = 0
    long_term: int = 0
    core: int = 0


def format_for_core_memory(memory: LongTermMemory) -> str:
    """Markdown block appended to core memory destinations."""
    obs = memory.observation
    lines = [
        f"## {obs.text}",
        "",
        f"- **Count**: {obs.count}",
        f"- **First seen**: {obs.first_seen.date().isoformat()}",
        f"- **Last seen**: {obs.last_seen.date().isoformat()}",
    ]
    if obs.source_session_ids:
        lines.append(f"- **Sessions**: {', '.join(obs.source_session_ids)}")
    if obs.category:
        lines.append(f"- **Category**: {obs.category}")
    lines.append("")
    return "\n".join(lines)


class MemoryHierarchy:
    format_for_core_memory = staticmethod(format_for_core_memory)

    def __init__(
        self,
        observations: ObservationStore,
        memories: LongTermMemoryStore,
        destinations: list[CoreMemoryDestination] | None = None,
        thresholds: PromotionThresholds | None = None,
    ):
        self.observations = observations
        self.memories = memories
        self.destinations = destinations or []
        self.thresholds = thresholds or PromotionThresholds()

    # -- Observation → long-term --

    def promote_to_long_term(self, obs_id: str) -> PromotionResult:
        observation = self.observations.get_by_id(obs_id)
        if observation is None:
            return PromotionResult(False, reason=f"Observation not found: {obs_id}")
        if observation.status == "denied":
            return PromotionResult(False, reason=f"Observation is denied: {obs_id}")
        if observation.status in ("promoted-to-long-term", "promoted-to-core"):
            return PromotionResult(False, reason=f"Observation already promoted: {obs_id}")

        if observation.status == "pending":
            try:
                observation = self.observations.set_status(obs_id, "approved")
            except StoreError as exc:
                return PromotionResult(False, reason=f"Failed to approve observation: {exc}")

        required = self.thresholds.observation_min_count
        if observation.count < required:
            return PromotionResult(
                False,
                reason=f"Count too low: {observation.count}/{required}",
                shortfalls=[Shortfall("count", observation.count, required)],
            )

        try:
            memory = self.memories.promote(observation)
        except StoreError as exc:
            return PromotionResult(False, reason=f"Failed to store long-term memory: {exc}")
        try:
            self.observations.set_status(obs_id, "promoted-to-long-term")
        except StoreError as exc:
            self.memories.delete(memory.id)
            return PromotionResult(False, reason=f"Failed to update observation: {exc}")
        logger.info("Promoted observation %s to long-term memory %s", obs_id, memory.id)
        return PromotionResult(True, memory_id=memory.id)

    # -- Long-term → core --

    def core_shortfalls(self, memory: LongTermMemory, now: datetime | None = None) -> list[Shortfall]:
        shortfalls = []
        count = memory.observation.count
        if count < self.thresholds.core_min_count:
            shortfalls.append(Shortfall("count", count, self.thresholds.core_min_count))
        days = self.memories.days_since_promotion(memory, now)
        if days < self.thresholds.core_min_days:
            shortfalls.append(Shortfall("days", days, self.thresholds.core_min_days))
        return shortfalls

    def promote_to_core(
        self,
        memory_id: str,
        targets: list[str] | None = None,
        now: datetime | None = None,
    ) -> PromotionResult:
        """Append a memory to core destinations once it is old and frequent enough.

        ``memory_id`` may also be the id of the promoted observation.
        ``targets`` are destination names; None means every configured one.
        """
        memory = self.memories.get_by_id(memory_id) or self.memories.get_by_observation_id(memory_id)
        if memory is None:
            return PromotionResult(False, reason=f"Long-term memory not found: {memory_id}")
        if memory.status != "approved":
            return PromotionResult(False, reason=f"Long-term memory is {memory.status}: {memory.id}")

        self._refresh(memory)
        shortfalls = self.core_shortfalls(memory, now)
        if shortfalls:
            reasons = []
            for s in shortfalls:
                if s.kind == "count":
                    reasons.append(f"Count too low for core promotion: {s.current}/{s.required}")
                else:
                    reasons.append(f"Not enough time in long-term: {s.current}/{s.required} days")
            return PromotionResult(False, reason="; ".join(reasons), memory_id=memory.id, shortfalls=shortfalls)

        names = targets if targets is not None else [d.name for d in self.destinations]
        if not names:
            return PromotionResult(False, reason="No core memory targets configured", memory_id=memory.id)

        block = format_for_core_memory(memory)
        by_name = {d.name: d for d in self.destinations}
        written: list[str] = []
        errors: list[str] = []
        for name in names:
            destination = by_name.get(name)
            if destination is None:
                errors.append(f"No destination configured for target: {name}")
                continue
            try:
                destination.append(block)
            except (MnemoError, OSError) as exc:
                errors.append(f"Failed to write to {name}: {exc}")
                continue
            written.append(name)

        if not written:
            return PromotionResult(False, reason="; ".join(errors), memory_id=memory.id)

        self.memories.set_status(memory.id, "scheduled-for-core")
        source = self.observations.get_by_id(memory.observation.id)
        if source is not None and source.status != "denied":
            self.observations.set_status(memory.observation.id, "promoted-to-core")
        logger.info("Promoted memory %s to core: %s", memory.id, ", ".join(written))
        return PromotionResult(
            True,
            reason=f"Partial success: {'; '.join(errors)}" if errors else None,
            memory_id=memory.id,
            written_to=written,
        )

    # -- Queries --

    def get_promotable_to_core(self, now: datetime | None = None) -> list[LongTermMemory]:
        now = now or utcnow()
        return [m for m in self.get_long_term_memories() if not self.core_shortfalls(m, now)]

    def get_long_term_memories(self) -> list[LongTermMemory]:
        """Active long-term memories: not denied, not yet scheduled for core."""
        return self.memories.filter(lambda m: m.status == "approved")

    def get_counts(self) -> LevelCounts:
        counts = self.memories.get_counts()
        return LevelCounts(
            pending=len(self.observations.get_pending()),
            long_term=counts.get("approved", 0),
            core=counts.get("scheduled-for-core", 0),
        )

    # -- Deny --

    def deny_observation(self, obs_id: str) -> Observation:
        return self.observations.set_status(obs_id, "denied")

    def deny_memory(self, memory_id: str) -> LongTermMemory:
        return self.memories.set_status(memory_id, "denied")

    # -- Maintenance --

    def refresh_long_term_counts(self) -> int:
        """Copy current counts from observations into active memory snapshots.

        Observations keep collecting sightings after promotion; this carries
        them into the long-term layer. Returns how many memories changed.
        """
        return sum(1 for memory in self.get_long_term_memories() if self._refresh(memory))

    def _refresh(self, memory: LongTermMemory) -> bool:
        current = self.observations.get_by_id(memory.observation.id)
        if current is None:
            return False
        snap = memory.observation
        if (
            current.count == snap.count
            and current.last_seen == snap.last_seen
            and current.source_session_ids == snap.source_session_ids
        ):
            return False
        self.memories.update_observation(memory.id, current)
        return True

