"""mnemo - pattern detection and memory promotion for coding assistant sessions.

Usage:
    from mnemo import AnalysisEngine, ObservationStore, MemoryHierarchy

    engine = AnalysisEngine(sources, oracle, observations, state)
    result = engine.run()
    hierarchy = MemoryHierarchy(observations, memories, destinations)
    hierarchy.promote_to_long_term(observation_id)
"""

from mnemo.core.models import LongTermMemory, Message, Observation, ToolUse, Transcript
from mnemo.engine import AnalysisEngine, AnalysisOptions, AnalysisResult
from mnemo.memory.hierarchy import MemoryHierarchy, PromotionResult
from mnemo.storage import LongTermMemoryStore, ObservationStore, PatternStore, RunStateStore

__version__ = "0.1.0"

__all__ = [
    "AnalysisEngine",
    "AnalysisOptions",
    "AnalysisResult",
    "LongTermMemory",
    "LongTermMemoryStore",
    "MemoryHierarchy",
    "Message",
    "Observation",
    "ObservationStore",
    "PatternStore",
    "PromotionResult",
    "RunStateStore",
    "ToolUse",
    "Transcript",
]
