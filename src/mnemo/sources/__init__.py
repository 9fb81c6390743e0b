"""Transcript sources."""

from __future__ import annotations

from mnemo.sources.base import StaticSource, TranscriptSource
from mnemo.sources.claude_code import ClaudeCodeSource, ParsedConversation, parse_conversation
from mnemo.sources.opencode import OpenCodeSource

__all__ = [
    "ClaudeCodeSource",
    "OpenCodeSource",
    "ParsedConversation",
    "StaticSource",
    "TranscriptSource",
    "configured_sources",
    "parse_conversation",
]


def configured_sources(settings) -> list[TranscriptSource]:
    """Every source mnemo knows how to read; the engine applies the toggles."""
    return [
        ClaudeCodeSource(settings.claude_projects_dir),
        OpenCodeSource(settings.opencode_sessions_dir),
    ]
