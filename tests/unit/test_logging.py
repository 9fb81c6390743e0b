"""Unit tests for mnemo structured run logging."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from mnemo.core.logging import AnalysisLogger, RunLog, SourceLog, Verbosity


def read_events(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestSourceLog:
    def test_creation_defaults(self):
        """SourceLog has sensible defaults."""
        log = SourceLog(name="claude-code")
        assert log.transcripts == 0
        assert log.processed_ids == []
        assert log.failed_ids == []
        assert log.oracle_calls == 0

    def test_to_dict(self):
        log = SourceLog(name="claude-code", transcripts=2, processed_ids=["a"], failed_ids=["b"], created=3)
        d = log.to_dict()
        assert d["name"] == "claude-code"
        assert d["processed_ids"] == ["a"]
        assert d["failed_ids"] == ["b"]
        assert d["created"] == 3


class TestRunLog:
    def test_finalize_sums_sources(self):
        log = RunLog(run_id="r1")
        log.get_or_create_source("a").created = 2
        log.get_or_create_source("b").created = 3
        log.get_or_create_source("b").bumped = 1
        log.get_or_create_source("a").oracle_calls = 4
        log.finalize()
        assert (log.total_created, log.total_bumped, log.total_oracle_calls) == (5, 1, 4)
        assert set(log.to_dict()["sources"]) == {"a", "b"}

    def test_get_or_create_is_stable(self):
        log = RunLog()
        assert log.get_or_create_source("x") is log.get_or_create_source("x")


class TestAnalysisLogger:
    def test_no_logs_dir_writes_nothing(self):
        logger = AnalysisLogger()
        assert logger.log_path is None
        logger.run_start(None, ["claude-code"])
        logger.run_finish(0.1, "success")

    def test_jsonl_events(self, tmp_path):
        logger = AnalysisLogger(logs_dir=tmp_path / "logs")
        since = datetime(2026, 3, 1, tzinfo=timezone.utc)
        logger.run_start(since, ["claude-code"])
        logger.source_fetched("claude-code", 2)
        logger.analyzer_result("tool-usage", "s1", 3)
        logger.oracle_call("claude-code", "extract")
        logger.transcript_processed("claude-code", "s1", 2, 1)
        logger.transcript_failed("claude-code", "s2", "oracle down")
        logger.run_finish(1.25, "partial_failure")

        events = read_events(logger.log_path)
        assert [e["event"] for e in events] == [
            "run_start",
            "source_fetched",
            "analyzer_result",
            "oracle_call",
            "transcript_processed",
            "transcript_failed",
            "run_finish",
        ]
        assert events[0]["since"] == since.isoformat()
        assert all("timestamp" in e for e in events)
        finish = events[-1]
        assert finish["status"] == "partial_failure"
        assert finish["total_created"] == 2
        assert finish["total_bumped"] == 1
        assert finish["total_oracle_calls"] == 1

        source = logger.run_log.sources["claude-code"]
        assert source.processed_ids == ["s1"]
        assert source.failed_ids == ["s2"]

    def test_log_file_named_by_run_id(self, tmp_path):
        logger = AnalysisLogger(logs_dir=tmp_path)
        assert logger.log_path == tmp_path / f"{logger.run_log.run_id}.jsonl"
        logger.close()

    def test_verbose_console_output(self, capsys):
        logger = AnalysisLogger(verbosity=Verbosity.VERBOSE)
        logger.source_skipped("claude-code", "unavailable")
        logger.analyzer_result("tool-usage", "s1", 3)
        err = capsys.readouterr().err
        assert "claude-code: skipped (unavailable)" in err
        assert "tool-usage" not in err

    def test_default_verbosity_is_quiet(self, capsys):
        logger = AnalysisLogger()
        logger.source_skipped("claude-code", "disabled")
        assert capsys.readouterr().err == ""
