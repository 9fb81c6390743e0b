"""Base class for programmatic pattern analyzers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from mnemo.core.models import Message, Observation, Transcript, utcnow


class PatternAnalyzer(ABC):
    """Detects patterns in a transcript without calling an LLM.

    Analyzers are pure: they read the transcript and its messages and return
    draft observations (count 1, status pending, attributed to the transcript).
    They never touch storage.
    """

    name: str = ""

    @abstractmethod
    def analyze(self, transcript: Transcript, messages: list[Message]) -> list[Observation]:
        """Return draft observations found in ``messages``."""
        ...

    def draft(
        self,
        text: str,
        category: str,
        transcript: Transcript,
        metadata: dict[str, Any] | None = None,
    ) -> Observation:
        now = utcnow()
        return Observation(
            text=text,
            category=category,
            count=1,
            status="pending",
            source_session_ids=[transcript.id],
            first_seen=now,
            last_seen=now,
            metadata=metadata,
        )
