"""Programmatic pattern analyzers."""

from __future__ import annotations

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.analyzers.error_pattern import ErrorPatternDetector
from mnemo.analyzers.file_tracker import FileInteractionTracker
from mnemo.analyzers.tool_usage import ToolUsageAnalyzer
from mnemo.analyzers.workflow import WorkflowSequenceDetector

__all__ = [
    "ErrorPatternDetector",
    "FileInteractionTracker",
    "PatternAnalyzer",
    "ToolUsageAnalyzer",
    "WorkflowSequenceDetector",
    "default_analyzers",
]


def default_analyzers() -> list[PatternAnalyzer]:
    """All four analyzers in the order their outputs are concatenated."""
    return [
        ToolUsageAnalyzer(),
        ErrorPatternDetector(),
        FileInteractionTracker(),
        WorkflowSequenceDetector(),
    ]
