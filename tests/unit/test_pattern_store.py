"""Unit tests for the expiring pattern store and run state store."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from mnemo.core.errors import StoreError
from mnemo.storage import PatternQuery, PatternStore, RunStateStore
from tests.helpers.factories import NOW, make_observation


class TestExpiration:
    def test_exactly_window_days_old_is_live(self, pattern_store):
        pattern = make_observation(seen=NOW - timedelta(days=30))
        assert not pattern_store.is_expired(pattern, now=NOW)

    def test_one_day_past_window_is_expired(self, pattern_store):
        pattern = make_observation(seen=NOW - timedelta(days=31))
        assert pattern_store.is_expired(pattern, now=NOW)

    def test_expired_hidden_but_retained_until_purge(self, pattern_store):
        pattern_store.save_patterns(
            [
                make_observation(text="fresh", seen=NOW - timedelta(days=2)),
                make_observation(text="stale", seen=NOW - timedelta(days=45)),
            ]
        )
        assert [p.text for p in pattern_store.get_all(now=NOW)] == ["fresh"]
        assert len(pattern_store.get_all(include_expired=True)) == 2
        assert [p.text for p in pattern_store.get_expired(now=NOW)] == ["stale"]

        assert pattern_store.purge_expired(now=NOW) == 1
        reloaded = PatternStore(pattern_store.path)
        assert [p.text for p in reloaded.get_all(include_expired=True)] == ["fresh"]

    def test_custom_window(self, tmp_path):
        store = PatternStore(tmp_path / "patterns.json", expiration_days=3)
        assert store.is_expired(make_observation(seen=NOW - timedelta(days=4)), now=NOW)


class TestPatternQuery:
    def test_query_filters(self, pattern_store):
        pattern_store.save_patterns(
            [
                make_observation(text="a", category="workflow", count=4, sessions=["s1"]),
                make_observation(text="b", category="style", count=1, sessions=["s2"]),
                make_observation(text="old", category="workflow", count=9, seen=NOW - timedelta(days=60)),
            ]
        )
        assert [p.text for p in pattern_store.query(PatternQuery(category="workflow"), now=NOW)] == ["a"]
        included = pattern_store.query(PatternQuery(category="workflow", include_expired=True), now=NOW)
        assert [p.text for p in included] == ["a", "old"]
        assert [p.text for p in pattern_store.query(PatternQuery(min_count=2), now=NOW)] == ["a"]
        assert [p.text for p in pattern_store.query(PatternQuery(session_ids=["s2"]), now=NOW)] == ["b"]

    def test_save_pattern_stores_a_copy(self, pattern_store):
        pattern = make_observation(count=1)
        pattern_store.save_pattern(pattern)
        pattern.count = 5
        assert pattern_store.get_by_id(pattern.id).count == 1

    def test_save_pattern_overwrites_by_id(self, pattern_store):
        pattern = make_observation(count=1)
        pattern_store.save_pattern(pattern)
        pattern.count = 2
        pattern_store.save_pattern(pattern)
        assert pattern_store.count() == 1
        assert pattern_store.get_by_id(pattern.id).count == 2


class TestRunStateStore:
    def test_fresh_state(self, state_store):
        assert state_store.last_analysis_run is None
        assert state_store.state.last_error is None

    def test_last_run_round_trip_clears_error(self, state_store):
        state_store.record_error("boom")
        state_store.update_last_analysis_run(NOW)
        reloaded = RunStateStore(state_store.path)
        assert reloaded.last_analysis_run == NOW
        assert reloaded.state.last_error is None

    def test_counts_persisted(self, state_store):
        state_store.update_counts(3, 2, 1)
        data = json.loads(state_store.path.read_text())
        assert data["version"] == 1
        assert (data["observation_count"], data["long_term_memory_count"], data["core_memory_count"]) == (3, 2, 1)

    def test_corrupt_state_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[[[")
        with pytest.raises(StoreError):
            RunStateStore(path)
