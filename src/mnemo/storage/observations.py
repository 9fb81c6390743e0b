"""Observation store: persisted observations plus similarity deduplication."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from mnemo.core.errors import ErrorCode, InvalidStateError
from mnemo.core.models import OBSERVATION_STATUSES, Observation, can_transition, utcnow
from mnemo.storage.snapshot import SnapshotStore, dump_versioned, load_versioned

if TYPE_CHECKING:
    from mnemo.oracle.base import SemanticOracle

logger = logging.getLogger(__name__)

# Fields ``update`` refuses to overwrite.
PROTECTED_FIELDS = frozenset({"id", "first_seen"})


@dataclass
class ObservationQuery:
    """Filter for ``ObservationStore.query``. Unset fields match everything."""

    status: str | list[str] | None = None
    start: datetime | None = None
    end: datetime | None = None
    date_field: str = "first_seen"  # or "last_seen"
    min_count: int | None = None
    category: str | None = None
    tags: list[str] | None = None
    session_ids: list[str] | None = None

    def matches(self, obs: Observation) -> bool:
        if self.status is not None:
            statuses = [self.status] if isinstance(self.status, str) else self.status
            if obs.status not in statuses:
                return False
        when = getattr(obs, self.date_field)
        if self.start is not None and when < self.start:
            return False
        if self.end is not None and when > self.end:
            return False
        if self.min_count is not None and obs.count < self.min_count:
            return False
        if self.category is not None and obs.category != self.category:
            return False
        if self.tags and not set(self.tags) & set(obs.tags or []):
            return False
        if self.session_ids and not set(self.session_ids) & set(obs.source_session_ids):
            return False
        return True


@dataclass
class Pagination:
    offset: int = 0
    limit: int | None = None

    def apply(self, items: list) -> list:
        end = None if self.limit is None else self.offset + self.limit
        return items[self.offset : end]


@dataclass
class Sort:
    field: str
    direction: str = "asc"  # "asc" | "desc"

    def apply(self, items: list) -> list:
        return sorted(items, key=lambda item: getattr(item, self.field), reverse=self.direction == "desc")


@dataclass
class MergeOutcome:
    """What ``merge_draft`` did with a draft: "created" or "bumped"."""

    action: str
    observation: Observation

    @property
    def created(self) -> bool:
        return self.action == "created"


class ObservationStore(SnapshotStore[Observation]):
    """Observations persisted as ``{"version": 1, "observations": [...]}``."""

    kind = "observation"

    def _key(self, item: Observation) -> str:
        return item.id

    def _encode(self, items: list[Observation]) -> str:
        return dump_versioned("observations", [obs.to_dict() for obs in items])

    def _decode(self, text: str) -> list[Observation]:
        return [Observation.from_dict(d) for d in load_versioned(text, "observations")]

    # -- Create --

    def create(self, observation: Observation) -> Observation:
        return self._put(observation)

    def bulk_create(self, observations: list[Observation]) -> list[Observation]:
        return self._put_many(observations)

    # -- Read --

    def get_by_status(self, status: str) -> list[Observation]:
        return self.filter(lambda obs: obs.status == status)

    def get_pending(self) -> list[Observation]:
        return self.get_by_status("pending")

    def get_approved(self) -> list[Observation]:
        return self.get_by_status("approved")

    def get_denied(self) -> list[Observation]:
        return self.get_by_status("denied")

    def query(
        self,
        options: ObservationQuery | None = None,
        pagination: Pagination | None = None,
        sort: Sort | None = None,
    ) -> list[Observation]:
        options = options or ObservationQuery()
        results = self.filter(options.matches)
        if sort is not None:
            results = sort.apply(results)
        if pagination is not None:
            results = pagination.apply(results)
        return results

    def get_promotable(self, min_count: int) -> list[Observation]:
        """Pending or approved observations with at least ``min_count`` sightings."""
        return self.filter(lambda obs: obs.status in ("pending", "approved") and obs.count >= min_count)

    # -- Update --

    def increment_count(self, obs_id: str, increment: int = 1) -> Observation:
        obs = self._require(obs_id)
        obs.count += increment
        obs.last_seen = utcnow()
        return self._put(obs)

    def update_last_seen(self, obs_id: str, when: datetime | None = None) -> Observation:
        obs = self._require(obs_id)
        obs.last_seen = when or utcnow()
        return self._put(obs)

    def add_session_ref(self, obs_id: str, session_id: str) -> Observation:
        obs = self._require(obs_id)
        if obs.add_session(session_id):
            self._commit()
        return obs

    def set_status(self, obs_id: str, status: str) -> Observation:
        """Move an observation forward in its lifecycle.

        Raises:
            InvalidStateError: unknown status, or a regression / exit from denied.
        """
        obs = self._require(obs_id)
        _check_transition(obs, status)
        obs.status = status
        return self._put(obs)

    def update(self, obs_id: str, changes: dict[str, Any]) -> Observation:
        """Partial update. ``id`` and ``first_seen`` are left untouched."""
        obs = self._require(obs_id)
        if "status" in changes:
            _check_transition(obs, changes["status"])
        for key, value in changes.items():
            if key in PROTECTED_FIELDS or not hasattr(obs, key):
                continue
            setattr(obs, key, value)
        return self._put(obs)

    def bulk_update(self, updates: dict[str, dict[str, Any]]) -> list[Observation]:
        updated = []
        for obs_id, changes in updates.items():
            obs = self._require(obs_id)
            if "status" in changes:
                _check_transition(obs, changes["status"])
            for key, value in changes.items():
                if key not in PROTECTED_FIELDS and hasattr(obs, key):
                    setattr(obs, key, value)
            updated.append(obs)
        self._commit()
        return updated

    # -- Delete --

    def delete_by_status(self, status: str) -> int:
        doomed = [obs.id for obs in self.get_by_status(status)]
        for obs_id in doomed:
            del self._items[obs_id]
        if doomed:
            self._commit()
        return len(doomed)

    # -- Deduplication --

    def merge_draft(
        self,
        draft: Observation,
        oracle: SemanticOracle,
        session_id: str | None = None,
    ) -> MergeOutcome:
        """Fold ``draft`` into the first similar stored observation, or store it.

        Only non-denied observations in the draft's exact category are
        candidates, scanned in insertion order. A similarity check that raises
        counts as "not similar" for that candidate.
        """
        if session_id is None and draft.source_session_ids:
            session_id = draft.source_session_ids[0]

        for candidate in self.get_all():
            if candidate.status == "denied" or candidate.category != draft.category:
                continue
            try:
                similar = oracle.check_similarity(draft, candidate)
            except Exception as exc:
                logger.debug("Similarity check failed for %s: %s", candidate.id, exc)
                continue
            if not similar:
                continue

            bumped = candidate.copy()
            bumped.count += 1
            bumped.last_seen = utcnow()
            if session_id:
                bumped.add_session(session_id)
            self._put(bumped)
            return MergeOutcome("bumped", bumped)

        now = utcnow()
        created = Observation(
            text=draft.text,
            category=draft.category,
            count=1,
            status="pending",
            source_session_ids=[session_id] if session_id else [],
            first_seen=now,
            last_seen=now,
            tags=list(draft.tags) if draft.tags else None,
            metadata=dict(draft.metadata) if draft.metadata else None,
        )
        self._put(created)
        return MergeOutcome("created", created)


def _check_transition(obs: Observation, status: str) -> None:
    if status not in OBSERVATION_STATUSES or not can_transition(obs.status, status):
        raise InvalidStateError(
            f"Cannot move observation {obs.id} from {obs.status!r} to {status!r}",
            ErrorCode.INVALID_STATE,
            {"id": obs.id, "from": obs.status, "to": status},
        )
