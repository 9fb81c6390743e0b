"""Configuration resolution: explicit values > env > defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mnemo.core.errors import ConfigError, ErrorCode

if TYPE_CHECKING:
    from mnemo.config import Settings

SUPPORTED_PROVIDERS = ("anthropic", "openai", "openai-compatible")


def redact_api_key(key: str | None) -> str | None:
    """Redact an API key, showing only the first 4 and last 4 characters.

    Short keys (8 chars or fewer) are fully redacted as '****'.
    """
    if key is None:
        return None
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


@dataclass
class LLMConfig:
    """Configuration for the LLM behind the semantic oracle.

    Supports three providers:
    - "anthropic": Anthropic Claude models (default)
    - "openai": OpenAI GPT models
    - "openai-compatible": Any OpenAI-compatible API (Ollama, vLLM, etc.)

    Environment variables:
    - MNEMO_LLM_PROVIDER: override provider
    - MNEMO_LLM_MODEL: override model
    - MNEMO_LLM_BASE_URL: override base_url
    - ANTHROPIC_API_KEY / OPENAI_API_KEY: API key per provider
    """

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    temperature: float = 0.0
    max_tokens: int = 1024
    base_url: str | None = None
    api_key: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> LLMConfig:
        """Create LLMConfig from a dict, applying env var overrides.

        Config precedence: explicit dict values > env vars > class defaults.
        """
        config = cls()

        env_provider = os.environ.get("MNEMO_LLM_PROVIDER")
        if env_provider:
            config.provider = env_provider
        env_model = os.environ.get("MNEMO_LLM_MODEL")
        if env_model:
            config.model = env_model
        env_base_url = os.environ.get("MNEMO_LLM_BASE_URL")
        if env_base_url:
            config.base_url = env_base_url

        for key in ("provider", "model", "temperature", "max_tokens", "base_url", "api_key"):
            if key in data:
                setattr(config, key, data[key])

        config.validate()
        return config

    def validate(self) -> None:
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Unknown LLM provider: {self.provider!r}. "
                f"Supported: {', '.join(SUPPORTED_PROVIDERS)}",
                ErrorCode.CONFIG_INVALID,
                {"provider": self.provider},
            )
        if self.provider == "openai-compatible" and not self.base_url:
            raise ConfigError(
                "openai-compatible provider requires base_url to be set",
                ErrorCode.CONFIG_MISSING,
                {"provider": self.provider},
            )

    def resolve_api_key(self) -> str | None:
        """Resolve the API key: explicit > env var per provider."""
        if self.api_key:
            return self.api_key
        if self.provider == "anthropic":
            return os.environ.get("ANTHROPIC_API_KEY")
        return os.environ.get("OPENAI_API_KEY")


@dataclass
class PromotionThresholds:
    """Count and age gates for the memory hierarchy."""

    observation_min_count: int = 2
    core_min_count: int = 3
    core_min_days: int = 7

    def __post_init__(self) -> None:
        if self.observation_min_count < 1 or self.core_min_count < 1:
            raise ConfigError(
                "Promotion count thresholds must be >= 1",
                ErrorCode.CONFIG_INVALID,
                {
                    "observation_min_count": self.observation_min_count,
                    "core_min_count": self.core_min_count,
                },
            )
        if self.core_min_days < 0:
            raise ConfigError(
                "core_min_days must be >= 0",
                ErrorCode.CONFIG_INVALID,
                {"core_min_days": self.core_min_days},
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> PromotionThresholds:
        return cls(
            observation_min_count=settings.promotion_min_count,
            core_min_count=settings.core_min_count,
            core_min_days=settings.core_min_days,
        )
