"""Persistent stores."""

from __future__ import annotations

from mnemo.storage.memories import LongTermMemoryStore, MemoryQuery
from mnemo.storage.observations import (
    MergeOutcome,
    ObservationQuery,
    ObservationStore,
    Pagination,
    Sort,
)
from mnemo.storage.patterns import PatternQuery, PatternStore
from mnemo.storage.state import RunState, RunStateStore

__all__ = [
    "LongTermMemoryStore",
    "MemoryQuery",
    "MergeOutcome",
    "ObservationQuery",
    "ObservationStore",
    "Pagination",
    "PatternQuery",
    "PatternStore",
    "RunState",
    "RunStateStore",
    "Sort",
]
