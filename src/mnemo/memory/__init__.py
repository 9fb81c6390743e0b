"""Memory hierarchy and scoped memories."""

from __future__ import annotations

from mnemo.memory.hierarchy import (
    LevelCounts,
    MemoryHierarchy,
    PromotionResult,
    Shortfall,
    format_for_core_memory,
)
from mnemo.memory.scopes import (
    Eligibility,
    ScopedMemory,
    aggregate_to_global,
    aggregate_to_project,
    check_eligibility,
    session_memory,
)

__all__ = [
    "Eligibility",
    "LevelCounts",
    "MemoryHierarchy",
    "PromotionResult",
    "ScopedMemory",
    "Shortfall",
    "aggregate_to_global",
    "aggregate_to_project",
    "check_eligibility",
    "format_for_core_memory",
    "session_memory",
]
