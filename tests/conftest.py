"""Shared test fixtures for mnemo."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mnemo.config import Settings, reset_settings
from mnemo.storage import LongTermMemoryStore, ObservationStore, PatternStore, RunStateStore
from tests.helpers.factories import NOW, ScriptedOracle


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def week_later():
    return NOW + timedelta(days=7)


@pytest.fixture
def observation_store(tmp_path):
    return ObservationStore(tmp_path / "observations.json")


@pytest.fixture
def memory_store(tmp_path):
    return LongTermMemoryStore(tmp_path / "long-term-memory.md")


@pytest.fixture
def pattern_store(tmp_path):
    return PatternStore(tmp_path / "patterns.json")


@pytest.fixture
def state_store(tmp_path):
    return RunStateStore(tmp_path / "state.json")


@pytest.fixture
def scripted_oracle():
    return ScriptedOracle()


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings rooted in tmp_path, with no LLM and no real home directories."""
    for var in ("MNEMO_LLM_PROVIDER", "MNEMO_LLM_MODEL", "MNEMO_LLM_BASE_URL"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield Settings(
        storage_dir=tmp_path / "mnemo",
        claude_projects_dir=tmp_path / "claude-projects",
        opencode_sessions_dir=tmp_path / "opencode-sessions",
        claude_md_path=tmp_path / "CLAUDE.md",
        agents_md_path=tmp_path / "AGENTS.md",
        llm_provider="",
        _env_file=None,
    )
    reset_settings()
