"""Unit tests for the markdown-backed long-term memory store."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from mnemo.core.errors import InvalidStateError
from mnemo.core.models import LongTermMemory
from mnemo.storage import LongTermMemoryStore, MemoryQuery
from mnemo.storage.memories import HEADER, days_between
from tests.helpers.factories import NOW, make_observation


class TestMarkdownFormat:
    def test_document_grouped_by_category(self, memory_store):
        memory_store.promote(make_observation(text="Uses uv", category="tool-choice", count=2))
        memory_store.promote(make_observation(text="Tests first", category="workflow", count=3))
        memory_store.promote(make_observation(text="Lints often", category="workflow", count=5))

        text = memory_store.path.read_text()
        assert text.startswith(HEADER)
        lines = text.splitlines()
        headings = [line for line in lines if line.startswith("## ")]
        assert headings == ["## tool-choice", "## workflow"]

        entries = [line for line in lines if line.startswith("- ")]
        assert entries[1].startswith("- Lints often `#")
        assert entries[1].endswith(" 5`")
        assert entries[2].startswith("- Tests first `#")

    def test_reload_preserves_records(self, memory_store):
        obs = make_observation(text="Prefers pytest", category="preference", count=4, sessions=["s1", "s2"])
        memory = memory_store.promote(obs)

        reloaded = LongTermMemoryStore(memory_store.path).get_by_id(memory.id)
        assert reloaded.observation.text == "Prefers pytest"
        assert reloaded.observation.count == 4
        assert reloaded.observation.id == obs.id
        assert reloaded.observation.source_session_ids == ["s1", "s2"]
        assert reloaded.promoted_at == memory.promoted_at
        assert reloaded.status == "approved"

    def test_entry_line_is_authoritative_for_count(self, memory_store):
        memory = memory_store.promote(make_observation(count=2))
        path = memory_store.path
        path.write_text(path.read_text().replace(f"#{memory.id} 2`", f"#{memory.id} 9`"))

        assert LongTermMemoryStore(path).get_by_id(memory.id).observation.count == 9

    def test_hand_written_entry_without_detail(self, tmp_path):
        path = tmp_path / "long-term-memory.md"
        path.write_text(f"{HEADER}\n\n## style\n- Prefers tabs `#abc-123 4`\n")

        memory = LongTermMemoryStore(path).get_by_id("abc-123")
        assert memory.observation.text == "Prefers tabs"
        assert memory.observation.category == "style"
        assert memory.observation.count == 4
        assert memory.observation.id == "obs-abc-123"

    def test_legacy_json_layout_accepted(self, tmp_path):
        memory = LongTermMemory(observation=make_observation(text="Legacy"), promoted_at=NOW)
        path = tmp_path / "long-term-memory.md"
        path.write_text(json.dumps({"version": 1, "memories": [memory.to_dict()]}))

        store = LongTermMemoryStore(path)
        assert store.get_by_id(memory.id).observation.text == "Legacy"

        store.save()
        assert path.read_text().startswith(HEADER)


class TestOperations:
    def test_promote_snapshots_observation(self, memory_store):
        obs = make_observation(count=2)
        memory = memory_store.promote(obs)
        obs.count = 10
        assert memory.observation.count == 2
        assert memory.observation.status == "promoted-to-long-term"
        assert memory_store.get_by_observation_id(obs.id) is memory

    def test_status_transitions(self, memory_store):
        memory = memory_store.promote(make_observation())
        memory_store.set_status(memory.id, "scheduled-for-core")
        with pytest.raises(InvalidStateError):
            memory_store.set_status(memory.id, "approved")
        memory_store.set_status(memory.id, "denied")
        with pytest.raises(InvalidStateError):
            memory_store.set_status(memory.id, "scheduled-for-core")

    def test_update_observation_keeps_long_term_label(self, memory_store):
        obs = make_observation(count=2)
        memory = memory_store.promote(obs)
        obs.count = 6
        memory_store.update_observation(memory.id, obs)
        stored = memory_store.get_by_id(memory.id)
        assert stored.observation.count == 6
        assert stored.observation.status == "promoted-to-long-term"

    def test_query_by_age_and_count(self, memory_store):
        young = memory_store.promote(make_observation(text="young", count=5))
        old = memory_store.promote(make_observation(text="old", count=1))
        old.promoted_at = young.promoted_at - timedelta(days=10)

        now = young.promoted_at
        assert memory_store.query(MemoryQuery(min_days=7), now=now) == [old]
        assert memory_store.query(MemoryQuery(min_count=3), now=now) == [young]

    def test_counts_by_status(self, memory_store):
        a = memory_store.promote(make_observation(text="a"))
        memory_store.promote(make_observation(text="b"))
        memory_store.set_status(a.id, "denied")
        assert memory_store.get_counts() == {"approved": 1, "scheduled-for-core": 0, "denied": 1}


class TestDays:
    def test_days_are_floored(self):
        assert days_between(NOW, NOW + timedelta(days=6, hours=23)) == 6
        assert days_between(NOW, NOW + timedelta(days=7)) == 7

    def test_days_never_negative(self):
        assert days_between(NOW, NOW - timedelta(days=3)) == 0
