"""Configuration settings for mnemo.

Storage layout under ``storage_dir``:
- observations.json: pending/approved observations
- long-term-memory.md: promoted long-term memories
- patterns.json: aggregated patterns with expiration
- state.json: last analysis run and counts
- logs/: per-run JSONL logs
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MNEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    storage_dir: Path = Field(default=Path.home() / ".mnemo")

    # Transcript sources
    claude_code_enabled: bool = True
    claude_projects_dir: Path = Field(default=Path.home() / ".claude" / "projects")
    opencode_enabled: bool = True
    opencode_sessions_dir: Path = Field(
        default=Path.home() / ".local" / "share" / "opencode" / "storage" / "session"
    )

    # Core memory destinations
    claude_md_enabled: bool = True
    claude_md_path: Path = Field(default=Path.home() / ".claude" / "CLAUDE.md")
    agents_md_enabled: bool = False
    agents_md_path: Path = Field(default=Path.home() / "AGENTS.md")

    # Promotion thresholds
    promotion_min_count: int = Field(default=2, ge=1)
    core_min_count: int = Field(default=3, ge=1)
    core_min_days: int = Field(default=7, ge=0)

    pattern_expiration_days: int = Field(default=30, ge=0)

    # LLM oracle; empty provider disables semantic extraction
    llm_provider: str = ""
    llm_model: str = ""

    @property
    def observations_path(self) -> Path:
        return self.storage_dir / "observations.json"

    @property
    def long_term_memory_path(self) -> Path:
        return self.storage_dir / "long-term-memory.md"

    @property
    def patterns_path(self) -> Path:
        return self.storage_dir / "patterns.json"

    @property
    def state_path(self) -> Path:
        return self.storage_dir / "state.json"

    @property
    def logs_dir(self) -> Path:
        return self.storage_dir / "logs"

    def source_enabled(self, name: str) -> bool:
        """Per-source toggle; sources without a setting are enabled."""
        attr = f"{name.replace('-', '_')}_enabled"
        return bool(getattr(self, attr, True))

    def ensure_storage_dir(self) -> None:
        """Create storage directory if it doesn't exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings cache (useful for testing)."""
    global _settings
    _settings = None
