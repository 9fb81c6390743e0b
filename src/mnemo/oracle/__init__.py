"""Semantic extraction oracles."""

from __future__ import annotations

from mnemo.oracle.base import NullOracle, SemanticOracle
from mnemo.oracle.llm import LLMOracle
from mnemo.oracle.llm_client import LLMClient, LLMResponse

__all__ = ["LLMClient", "LLMOracle", "LLMResponse", "NullOracle", "SemanticOracle", "build_oracle"]


def build_oracle(settings) -> SemanticOracle:
    """LLM oracle when a provider is configured, otherwise ``NullOracle``."""
    from mnemo.core.config import LLMConfig

    if not settings.llm_provider:
        return NullOracle()
    data = {"provider": settings.llm_provider}
    if settings.llm_model:
        data["model"] = settings.llm_model
    return LLMOracle(LLMClient(LLMConfig.from_dict(data)))
