"""Unit tests for the analysis engine."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.core.errors import ErrorCode, SourceError, StoreError
from mnemo.engine import AnalysisEngine, AnalysisOptions, resolve_status
from mnemo.oracle.base import NullOracle
from mnemo.sources import StaticSource
from mnemo.storage import ObservationStore
from tests.helpers.factories import NOW, ScriptedOracle, chain_messages, make_observation, make_transcript


class EchoAnalyzer(PatternAnalyzer):
    """Emits one draft per transcript, named after the transcript."""

    name = "echo"

    def analyze(self, transcript, messages):
        return [self.draft(f"seen {transcript.id}", "pattern", transcript)]


class ExplodingSource(StaticSource):
    def get_sessions(self, since=None):
        raise SourceError("permission denied", context={"source": self.name})


class PickyStore(ObservationStore):
    """Refuses to store drafts whose text contains 'bad'."""

    def merge_draft(self, draft, oracle, session_id=None):
        if "bad" in draft.text:
            raise StoreError("disk full")
        return super().merge_draft(draft, oracle, session_id)


def engine_for(transcripts, observation_store, state_store, oracle=None, **kwargs):
    return AnalysisEngine(
        sources=[StaticSource(transcripts=transcripts)],
        oracle=oracle or NullOracle(),
        observations=observation_store,
        state=state_store,
        analyzers=kwargs.pop("analyzers", [EchoAnalyzer()]),
        **kwargs,
    )


class TestResolveStatus:
    def test_statuses(self):
        assert resolve_status(3, 0, 0) == "success"
        assert resolve_status(2, 1, 1) == "partial_failure"
        assert resolve_status(2, 0, 1) == "partial_failure"
        assert resolve_status(0, 2, 2) == "failure"
        assert resolve_status(0, 0, 0) == "success"


class TestCutoff:
    def test_precedence(self, observation_store, state_store):
        state_store.update_last_analysis_run(NOW)
        engine = engine_for([], observation_store, state_store)
        explicit = NOW - timedelta(days=3)
        assert engine.resolve_cutoff(AnalysisOptions(since=explicit, force_full=True)) == explicit
        assert engine.resolve_cutoff(AnalysisOptions(force_full=True)) is None
        assert engine.resolve_cutoff(AnalysisOptions()) == NOW

    def test_incremental_run_skips_old_transcripts(self, observation_store, state_store):
        state_store.update_last_analysis_run(NOW)
        transcripts = [
            make_transcript("old", timestamp=NOW - timedelta(hours=1)),
            make_transcript("new", timestamp=NOW + timedelta(hours=1)),
        ]
        result = engine_for(transcripts, observation_store, state_store).run()
        assert result.sessions_processed == 1
        assert [o.text for o in observation_store.get_all()] == ["seen new"]


class TestRun:
    def test_success_counts_and_timestamps(self, observation_store, state_store):
        transcripts = [make_transcript("a"), make_transcript("b")]
        result = engine_for(transcripts, observation_store, state_store).run()

        assert result.status == "success"
        assert (result.sessions_processed, result.sessions_failed) == (2, 0)
        assert (result.observations_created, result.observations_bumped) == (2, 0)
        assert result.finished_at >= result.started_at
        assert result.duration_ms >= 0
        assert result.errors == []
        assert state_store.last_analysis_run == result.started_at

    def test_oracle_extractions_are_merged_with_analyzer_output(self, observation_store, state_store):
        oracle = ScriptedOracle(extractions={"a": [make_observation(text="seen a", category="pattern")]})
        result = engine_for([make_transcript("a")], observation_store, state_store, oracle=oracle).run()
        assert (result.observations_created, result.observations_bumped) == (1, 1)
        assert observation_store.get_all()[0].count == 2

    def test_oracle_failure_marks_transcript_failed(self, observation_store, state_store):
        oracle = ScriptedOracle(fail_on={"b"})
        transcripts = [make_transcript("a", timestamp=NOW), make_transcript("b", timestamp=NOW - timedelta(hours=1))]
        result = engine_for(transcripts, observation_store, state_store, oracle=oracle).run()

        assert result.status == "partial_failure"
        assert (result.sessions_processed, result.sessions_failed) == (1, 1)
        assert len(result.errors) == 1
        error = result.errors[0]
        assert (error.session_id, error.source, error.code) == ("b", "static", ErrorCode.LLM_CALL_FAILED)
        assert [o.text for o in observation_store.get_all()] == ["seen a"]
        assert state_store.state.last_error.startswith("1 error(s)")

    def test_every_transcript_failing_is_failure(self, observation_store, state_store):
        oracle = ScriptedOracle(fail_on={"a", "b"})
        transcripts = [make_transcript("a"), make_transcript("b")]
        result = engine_for(transcripts, observation_store, state_store, oracle=oracle).run()
        assert result.status == "failure"
        assert result.sessions_failed == 2

    def test_store_error_skips_only_that_draft(self, tmp_path, state_store):
        store = PickyStore(tmp_path / "observations.json")
        oracle = ScriptedOracle(
            extractions={"a": [make_observation(text="bad one"), make_observation(text="good one")]}
        )
        result = engine_for([make_transcript("a")], store, state_store, oracle=oracle).run()

        assert result.status == "partial_failure"
        assert result.sessions_processed == 1
        assert result.observations_created == 2
        assert [e.reason for e in result.errors] == ["disk full"]
        assert sorted(o.text for o in store.get_all()) == ["good one", "seen a"]

    def test_unavailable_source_skipped(self, observation_store, state_store):
        engine = AnalysisEngine(
            sources=[StaticSource(transcripts=[make_transcript()], available=False)],
            oracle=NullOracle(),
            observations=observation_store,
            state=state_store,
            analyzers=[EchoAnalyzer()],
        )
        result = engine.run()
        assert result.status == "success"
        assert result.sessions_processed == 0

    def test_disabled_source_skipped(self, observation_store, state_store, settings):
        settings.claude_code_enabled = False
        engine = AnalysisEngine(
            sources=[StaticSource(name="claude-code", transcripts=[make_transcript()])],
            oracle=NullOracle(),
            observations=observation_store,
            state=state_store,
            settings=settings,
            analyzers=[EchoAnalyzer()],
        )
        assert engine.run().sessions_processed == 0

    def test_source_fetch_error_recorded(self, observation_store, state_store):
        engine = AnalysisEngine(
            sources=[ExplodingSource(name="broken"), StaticSource(transcripts=[make_transcript("a")])],
            oracle=NullOracle(),
            observations=observation_store,
            state=state_store,
            analyzers=[EchoAnalyzer()],
        )
        result = engine.run()
        assert result.status == "partial_failure"
        assert result.sessions_processed == 1
        error = result.errors[0]
        assert (error.session_id, error.source, error.code) == ("N/A", "broken", ErrorCode.SESSION_READ_FAILED)

    def test_state_write_failure_is_non_fatal(self, observation_store):
        state = MagicMock()
        state.last_analysis_run = None
        state.update_last_analysis_run.side_effect = StoreError("read-only filesystem")
        result = engine_for([make_transcript("a")], observation_store, state).run()

        assert result.status == "partial_failure"
        assert result.sessions_processed == 1
        assert [(e.source, e.reason) for e in result.errors] == [("state", "read-only filesystem")]

    def test_patterns_mirrored(self, observation_store, state_store, pattern_store):
        engine = engine_for([make_transcript("a")], observation_store, state_store, patterns=pattern_store)
        engine.run()
        stored = observation_store.get_all()[0]
        assert pattern_store.get_by_id(stored.id).text == "seen a"

    def test_default_analyzers_used(self, observation_store, state_store):
        messages = chain_messages(["bash", "edit", "bash", "edit", "bash", "edit"])
        engine = AnalysisEngine(
            sources=[StaticSource(transcripts=[make_transcript("a", messages)])],
            oracle=NullOracle(),
            observations=observation_store,
            state=state_store,
        )
        result = engine.run()
        assert result.observations_created > 0
        assert any(o.text.startswith("Iterative loop detected") for o in observation_store.get_all())

    def test_run_log_written(self, observation_store, state_store, tmp_path):
        from mnemo.core.logging import AnalysisLogger

        run_logger = AnalysisLogger(logs_dir=tmp_path / "logs")
        engine_for([make_transcript("a")], observation_store, state_store, run_logger=run_logger).run()
        assert '"event": "run_finish"' in run_logger.log_path.read_text()

    def test_unexpected_extraction_error_fails_only_that_transcript(self, observation_store, state_store, tmp_path):
        from mnemo.core.logging import AnalysisLogger

        class GarbledOracle(ScriptedOracle):
            def extract_patterns(self, transcript):
                if transcript.id == "b":
                    raise RuntimeError("unexpected reply shape")
                return super().extract_patterns(transcript)

        run_logger = AnalysisLogger(logs_dir=tmp_path / "logs")
        transcripts = [make_transcript("a", timestamp=NOW), make_transcript("b", timestamp=NOW - timedelta(hours=1))]
        result = engine_for(
            transcripts, observation_store, state_store, oracle=GarbledOracle(), run_logger=run_logger
        ).run()

        assert result.status == "partial_failure"
        assert (result.sessions_processed, result.sessions_failed) == (1, 1)
        error = result.errors[0]
        assert (error.session_id, error.code) == ("b", ErrorCode.LLM_CALL_FAILED)
        assert "unexpected reply shape" in error.reason
        assert state_store.last_analysis_run == result.started_at
        assert '"event": "run_finish"' in run_logger.log_path.read_text()

    def test_run_log_closed_when_run_raises(self, observation_store, state_store, tmp_path):
        from mnemo.core.logging import AnalysisLogger

        class BrokenAnalyzer(PatternAnalyzer):
            name = "broken"

            def analyze(self, transcript, messages):
                raise ZeroDivisionError("bad window")

        run_logger = AnalysisLogger(logs_dir=tmp_path / "logs")
        engine = engine_for(
            [make_transcript("a")], observation_store, state_store, analyzers=[BrokenAnalyzer()], run_logger=run_logger
        )
        with pytest.raises(ZeroDivisionError):
            engine.run()
        assert run_logger._log_file is None

    def test_configured_sources_respect_toggles(self, observation_store, state_store, settings):
        import json

        from mnemo.sources import configured_sources

        folder = settings.opencode_sessions_dir / "project"
        folder.mkdir(parents=True)
        (folder / "ses_1.json").write_text(
            json.dumps({"modifiedAt": "2026-03-01T10:00:00Z", "messages": [{"role": "user", "content": "hi"}]})
        )
        claude_folder = settings.claude_projects_dir / "-work"
        claude_folder.mkdir(parents=True)
        (claude_folder / "session-x.jsonl").write_text(
            json.dumps({"timestamp": "2026-03-01T10:00:00Z", "message": {"role": "user", "content": "hi"}}) + "\n"
        )
        settings.claude_code_enabled = False

        engine = AnalysisEngine(
            sources=configured_sources(settings),
            oracle=NullOracle(),
            observations=observation_store,
            state=state_store,
            settings=settings,
            analyzers=[EchoAnalyzer()],
        )
        result = engine.run()
        assert result.sessions_processed == 1
        assert [o.text for o in observation_store.get_all()] == ["seen ses_1"]
