"""Unit tests for scoped (session/project/global) memories."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mnemo.core.config import PromotionThresholds
from mnemo.memory import (
    ScopedMemory,
    aggregate_to_global,
    aggregate_to_project,
    check_eligibility,
    session_memory,
)
from tests.helpers.factories import NOW, make_observation


def sessions_of(*pairs):
    return [
        session_memory(make_observation(count=count, sessions=[sid], seen=NOW + timedelta(days=i)), sid)
        for i, (sid, count) in enumerate(pairs)
    ]


class TestScopedMemory:
    def test_unknown_scope_rejected(self):
        with pytest.raises(ValueError, match="Unknown memory scope"):
            ScopedMemory(scope="team", observation=make_observation())

    def test_session_requires_session_id(self):
        with pytest.raises(ValueError):
            ScopedMemory(scope="session", observation=make_observation())

    def test_project_requires_project_id(self):
        with pytest.raises(ValueError):
            ScopedMemory(scope="project", observation=make_observation())

    def test_days_since_creation(self):
        memory = ScopedMemory(scope="global", observation=make_observation(), created_at=NOW)
        assert memory.days_since_creation(NOW + timedelta(days=3, hours=5)) == 3


class TestAggregation:
    def test_project_merges_sessions(self):
        children = sessions_of(("s1", 2), ("s2", 3))
        project = aggregate_to_project("repo-a", children)

        assert project.scope == "project"
        assert project.project_id == "repo-a"
        assert project.observation.count == 5
        assert project.observation.source_session_ids == ["s1", "s2"]
        assert project.observation.first_seen == NOW
        assert project.observation.last_seen == NOW + timedelta(days=1)
        assert project.child_ids == [c.id for c in children]

    def test_global_merges_projects(self):
        a = aggregate_to_project("repo-a", sessions_of(("s1", 1), ("s2", 1)))
        b = aggregate_to_project("repo-b", sessions_of(("s2", 2), ("s3", 1)))
        merged = aggregate_to_global([a, b])

        assert merged.scope == "global"
        assert merged.observation.count == 5
        assert merged.observation.source_session_ids == ["s1", "s2", "s3"]
        assert merged.child_ids == [a.id, b.id]

    def test_tags_and_metadata_unioned(self):
        first = session_memory(make_observation(), "s1")
        first.observation.tags = ["python"]
        first.observation.metadata = {"tool_name": "Bash"}
        second = session_memory(make_observation(), "s2")
        second.observation.tags = ["python", "testing"]
        second.observation.metadata = {"frequency": 4}

        project = aggregate_to_project("repo", [first, second])
        assert project.observation.tags == ["python", "testing"]
        assert project.observation.metadata == {"tool_name": "Bash", "frequency": 4}

    def test_empty_aggregation_rejected(self):
        with pytest.raises(ValueError):
            aggregate_to_project("repo", [])


class TestEligibility:
    def test_eligible_at_thresholds(self):
        memory = aggregate_to_project("repo", sessions_of(("s1", 1), ("s2", 2)))
        memory.created_at = NOW
        result = check_eligibility(memory, now=NOW + timedelta(days=7))
        assert result.eligible
        assert (result.current_count, result.required_count) == (3, 3)
        assert (result.current_days, result.required_days) == (7, 7)

    def test_shortfall_reason(self):
        memory = session_memory(make_observation(count=1), "s1")
        memory.created_at = NOW
        result = check_eligibility(memory, now=NOW + timedelta(days=2))
        assert not result.eligible
        assert result.reason == "Not eligible for promotion: count 1/3, days 2/7"

    def test_global_needs_two_sessions(self):
        project = aggregate_to_project("repo", sessions_of(("s1", 5)))
        merged = aggregate_to_global([project])
        merged.created_at = NOW
        result = check_eligibility(merged, PromotionThresholds(core_min_days=0), now=NOW)
        assert not result.eligible
        assert "at least 2 source sessions" in result.reason
