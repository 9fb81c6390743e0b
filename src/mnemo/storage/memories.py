"""Long-term memory store, persisted as a category-grouped markdown document.

Layout::

    # mnemo Long-Term Memory

    ## workflow
    - Runs tests after every edit `#5f0c...-memory-id 4`
      <!-- mnemo {"observation": {...}, "promoted_at": "...", "status": "approved"} -->

Each entry line carries the text, memory id and current count. The comment
line beneath it holds the full record so promotion dates and session ids
survive a reload; an entry without one is rebuilt from the line alone.
Files written in the older ``{"version": 1, "memories": [...]}`` JSON layout
are accepted on load.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime

from mnemo.core.errors import ErrorCode, InvalidStateError
from mnemo.core.models import (
    MEMORY_STATUSES,
    LongTermMemory,
    Observation,
    utcnow,
)
from mnemo.storage.snapshot import SnapshotStore, load_versioned

HEADER = "# mnemo Long-Term Memory"
ENTRY_RE = re.compile(r"^- (.+?) `#([A-Za-z0-9-]+) (\d+)`$")
CATEGORY_RE = re.compile(r"^## (.+)$")
DETAIL_RE = re.compile(r"^<!-- mnemo (\{.*\}) -->$")


@dataclass
class MemoryQuery:
    status: str | list[str] | None = None
    start: datetime | None = None
    end: datetime | None = None
    min_count: int | None = None
    min_days: int | None = None


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from ``earlier`` to ``later``, floored, never negative."""
    return max(0, (later - earlier).days)


class LongTermMemoryStore(SnapshotStore[LongTermMemory]):
    kind = "memory"

    def _key(self, item: LongTermMemory) -> str:
        return item.id

    def _encode(self, items: list[LongTermMemory]) -> str:
        lines = [HEADER, ""]
        by_category: dict[str, list[LongTermMemory]] = {}
        for memory in items:
            by_category.setdefault(memory.observation.category or "other", []).append(memory)

        for category in sorted(by_category):
            lines.append(f"## {category}")
            entries = sorted(by_category[category], key=lambda m: m.observation.count, reverse=True)
            for memory in entries:
                text = " ".join(memory.observation.text.split())
                lines.append(f"- {text} `#{memory.id} {memory.observation.count}`")
                lines.append(f"  <!-- mnemo {json.dumps(memory.to_dict())} -->")
            lines.append("")
        return "\n".join(lines)

    def _decode(self, text: str) -> list[LongTermMemory]:
        if not text.startswith(HEADER):
            return [LongTermMemory.from_dict(d) for d in load_versioned(text, "memories")]

        memories: list[LongTermMemory] = []
        category = "other"
        for raw in text.splitlines():
            line = raw.strip()
            header = CATEGORY_RE.match(line)
            if header:
                category = header.group(1).strip()
                continue
            entry = ENTRY_RE.match(line)
            if entry:
                body, memory_id, count = entry.groups()
                now = utcnow()
                memories.append(
                    LongTermMemory(
                        id=memory_id,
                        observation=Observation(
                            id=f"obs-{memory_id}",
                            text=body,
                            category=category,
                            count=int(count),
                            status="promoted-to-long-term",
                            first_seen=now,
                            last_seen=now,
                        ),
                        promoted_at=now,
                    )
                )
                continue
            detail = DETAIL_RE.match(line)
            if detail and memories:
                full = LongTermMemory.from_dict(json.loads(detail.group(1)))
                if full.id == memories[-1].id:
                    # The entry line is authoritative for the count.
                    full.observation.count = memories[-1].observation.count
                    memories[-1] = full
        return memories

    # -- Operations --

    def promote(self, observation: Observation) -> LongTermMemory:
        """Store a snapshot of ``observation`` as a new approved memory."""
        snapshot = observation.copy()
        snapshot.status = "promoted-to-long-term"
        return self._put(LongTermMemory(observation=snapshot))

    def get_by_observation_id(self, obs_id: str) -> LongTermMemory | None:
        for memory in self._items.values():
            if memory.observation.id == obs_id:
                return memory
        return None

    def query(self, options: MemoryQuery | None = None, now: datetime | None = None) -> list[LongTermMemory]:
        options = options or MemoryQuery()
        now = now or utcnow()
        statuses = None
        if options.status is not None:
            statuses = [options.status] if isinstance(options.status, str) else options.status

        results = []
        for memory in self._items.values():
            if statuses is not None and memory.status not in statuses:
                continue
            if options.start is not None and memory.promoted_at < options.start:
                continue
            if options.end is not None and memory.promoted_at > options.end:
                continue
            if options.min_count is not None and memory.observation.count < options.min_count:
                continue
            if options.min_days is not None and self.days_since_promotion(memory, now) < options.min_days:
                continue
            results.append(memory)
        return results

    def set_status(self, memory_id: str, status: str) -> LongTermMemory:
        """approved → scheduled-for-core, or anything → denied.

        Raises:
            InvalidStateError: on any other transition.
        """
        memory = self._require(memory_id)
        allowed = (
            status == memory.status
            or (memory.status != "denied" and status == "denied")
            or (memory.status == "approved" and status == "scheduled-for-core")
        )
        if status not in MEMORY_STATUSES or not allowed:
            raise InvalidStateError(
                f"Cannot move memory {memory_id} from {memory.status!r} to {status!r}",
                ErrorCode.INVALID_STATE,
                {"id": memory_id, "from": memory.status, "to": status},
            )
        memory.status = status
        return self._put(memory)

    def update_observation(self, memory_id: str, observation: Observation) -> LongTermMemory:
        """Replace the embedded snapshot, keeping its long-term status label."""
        memory = self._require(memory_id)
        snapshot = observation.copy()
        snapshot.status = memory.observation.status
        memory.observation = snapshot
        return self._put(memory)

    def get_counts(self) -> dict[str, int]:
        counts = {status: 0 for status in MEMORY_STATUSES}
        for memory in self._items.values():
            counts[memory.status] = counts.get(memory.status, 0) + 1
        return counts

    @staticmethod
    def days_since_promotion(memory: LongTermMemory, now: datetime | None = None) -> int:
        return days_between(memory.promoted_at, now or utcnow())
