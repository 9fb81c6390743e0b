"""Semantic oracle contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

from mnemo.core.models import Observation, Transcript


class SemanticOracle(ABC):
    """Judges patterns the analyzers cannot compute.

    ``extract_patterns`` reads a transcript and proposes draft observations;
    ``check_similarity`` decides whether two observations describe the same
    pattern. Similarity must be conservative: ambiguity means ``False``.
    """

    name: str = "oracle"

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    def extract_patterns(self, transcript: Transcript) -> list[Observation]:
        """Draft observations for ``transcript``.

        Raises:
            OracleError: if the oracle cannot be reached.
        """
        ...

    @abstractmethod
    def check_similarity(self, a: Observation, b: Observation) -> bool: ...


class NullOracle(SemanticOracle):
    """Oracle used when no LLM is configured: extracts nothing, merges nothing."""

    name = "null"

    def is_available(self) -> bool:
        return True

    def extract_patterns(self, transcript: Transcript) -> list[Observation]:
        return []

    def check_similarity(self, a: Observation, b: Observation) -> bool:
        return False
