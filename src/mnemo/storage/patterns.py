"""Pattern store: observation-shaped records that expire after a window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mnemo.core.models import Observation, utcnow
from mnemo.storage.snapshot import SnapshotStore, dump_versioned, load_versioned

DEFAULT_EXPIRATION_DAYS = 30


@dataclass
class PatternQuery:
    category: str | list[str] | None = None
    start: datetime | None = None
    end: datetime | None = None
    min_count: int | None = None
    tags: list[str] | None = None
    session_ids: list[str] | None = None
    include_expired: bool = False


class PatternStore(SnapshotStore[Observation]):
    """Patterns persisted as ``{"version": 1, "patterns": [...]}``.

    A pattern is expired once more than ``expiration_days`` whole days have
    passed since its ``last_seen``. Expired patterns are hidden from default
    reads but stay on disk until ``purge_expired`` runs.
    """

    kind = "pattern"

    def __init__(self, path, expiration_days: int = DEFAULT_EXPIRATION_DAYS):
        self.expiration_days = expiration_days
        super().__init__(path)

    def _key(self, item: Observation) -> str:
        return item.id

    def _encode(self, items: list[Observation]) -> str:
        return dump_versioned("patterns", [p.to_dict() for p in items])

    def _decode(self, text: str) -> list[Observation]:
        return [Observation.from_dict(d) for d in load_versioned(text, "patterns")]

    def is_expired(self, pattern: Observation, now: datetime | None = None) -> bool:
        age = (now or utcnow()) - pattern.last_seen
        return age.days > self.expiration_days

    def save_pattern(self, pattern: Observation) -> Observation:
        return self._put(pattern.copy())

    def save_patterns(self, patterns: list[Observation]) -> list[Observation]:
        return self._put_many(p.copy() for p in patterns)

    def get_all(self, include_expired: bool = False, now: datetime | None = None) -> list[Observation]:
        patterns = super().get_all()
        if include_expired:
            return patterns
        return [p for p in patterns if not self.is_expired(p, now)]

    def get_expired(self, now: datetime | None = None) -> list[Observation]:
        return [p for p in super().get_all() if self.is_expired(p, now)]

    def query(self, options: PatternQuery | None = None, now: datetime | None = None) -> list[Observation]:
        options = options or PatternQuery()
        categories = None
        if options.category is not None:
            categories = [options.category] if isinstance(options.category, str) else options.category

        results = []
        for pattern in self.get_all(include_expired=options.include_expired, now=now):
            if categories is not None and pattern.category not in categories:
                continue
            if options.start is not None and pattern.last_seen < options.start:
                continue
            if options.end is not None and pattern.last_seen > options.end:
                continue
            if options.min_count is not None and pattern.count < options.min_count:
                continue
            if options.tags and not set(options.tags) & set(pattern.tags or []):
                continue
            if options.session_ids and not set(options.session_ids) & set(pattern.source_session_ids):
                continue
            results.append(pattern)
        return results

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired patterns. Returns how many were removed."""
        expired = [p.id for p in self.get_expired(now)]
        for pattern_id in expired:
            del self._items[pattern_id]
        if expired:
            self._commit()
        return len(expired)
