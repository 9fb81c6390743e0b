"""Structured logging and verbosity levels for analysis runs."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any


class Verbosity(IntEnum):
    """Verbosity levels for console output."""

    DEFAULT = 0   # Summary only
    VERBOSE = 1   # + per-source and per-transcript progress
    DEBUG = 2     # + per-analyzer counts, oracle calls, timing


@dataclass
class SourceLog:
    """Per-source run statistics."""

    name: str
    transcripts: int = 0
    processed_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    created: int = 0
    bumped: int = 0
    oracle_calls: int = 0
    time_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "transcripts": self.transcripts,
            "processed_ids": list(self.processed_ids),
            "failed_ids": list(self.failed_ids),
            "created": self.created,
            "bumped": self.bumped,
            "oracle_calls": self.oracle_calls,
            "time_seconds": self.time_seconds,
        }


@dataclass
class RunLog:
    """Structured log of a complete analysis run.

    The dict format is::

        {
            "run_id": "20260101T000000Z",
            "sources": {
                "claude-code": {
                    "transcripts": 4,
                    "processed_ids": ["s1", ...],
                    "failed_ids": [],
                    "created": 6,
                    "bumped": 2,
                    "oracle_calls": 12,
                    "time_seconds": 2.3,
                },
            },
            "total_created": 6,
            "total_bumped": 2,
            "total_oracle_calls": 12,
            "total_time": 2.4,
        }
    """

    run_id: str = ""
    sources: dict[str, SourceLog] = field(default_factory=dict)
    total_time: float = 0.0
    total_created: int = 0
    total_bumped: int = 0
    total_oracle_calls: int = 0

    def get_or_create_source(self, name: str) -> SourceLog:
        """Get existing source log or create a new one."""
        if name not in self.sources:
            self.sources[name] = SourceLog(name=name)
        return self.sources[name]

    def finalize(self) -> None:
        """Compute totals from per-source data."""
        self.total_created = sum(s.created for s in self.sources.values())
        self.total_bumped = sum(s.bumped for s in self.sources.values())
        self.total_oracle_calls = sum(s.oracle_calls for s in self.sources.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "sources": {name: src.to_dict() for name, src in self.sources.items()},
            "total_created": self.total_created,
            "total_bumped": self.total_bumped,
            "total_oracle_calls": self.total_oracle_calls,
            "total_time": self.total_time,
        }


class AnalysisLogger:
    """Structured logger for analysis runs.

    Writes JSONL log files to ``logs_dir`` and optionally emits
    console output via Rich based on verbosity level.
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.DEFAULT,
        logs_dir: Path | None = None,
    ):
        self.verbosity = verbosity
        self.run_log = RunLog(
            run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        )
        self._log_file = None
        self._log_path: Path | None = None
        self._source_start: float = 0.0
        self._console = None

        if logs_dir is not None:
            logs_dir.mkdir(parents=True, exist_ok=True)
            self._log_path = logs_dir / f"{self.run_log.run_id}.jsonl"
            self._log_file = open(self._log_path, "a")

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write a JSON event to the JSONL log file."""
        if self._log_file is not None:
            event["timestamp"] = datetime.now(timezone.utc).isoformat()
            self._log_file.write(json.dumps(event) + "\n")
            self._log_file.flush()

    def _console_print(self, message: str, min_verbosity: Verbosity) -> None:
        """Print to console if verbosity is high enough."""
        if self.verbosity >= min_verbosity:
            if self._console is None:
                from rich.console import Console

                self._console = Console(stderr=True)
            self._console.print(message)

    # -- Run lifecycle --

    def run_start(self, since: datetime | None, source_names: list[str]) -> None:
        self._write_event({
            "event": "run_start",
            "since": since.isoformat() if since else None,
            "sources": source_names,
        })
        if since:
            self._console_print(f"[bold]Analyzing transcripts since[/bold] {since.isoformat()}", Verbosity.VERBOSE)
        else:
            self._console_print("[bold]Analyzing all transcripts[/bold]", Verbosity.VERBOSE)

    def run_finish(self, total_time: float, status: str) -> None:
        """Log the completion of a run and finalize stats."""
        self.run_log.total_time = total_time
        self.run_log.finalize()

        self._write_event({
            "event": "run_finish",
            "status": status,
            "total_time": round(total_time, 3),
            "total_created": self.run_log.total_created,
            "total_bumped": self.run_log.total_bumped,
            "total_oracle_calls": self.run_log.total_oracle_calls,
        })
        self.close()

    # -- Source events --

    def source_skipped(self, name: str, reason: str) -> None:
        self._write_event({"event": "source_skipped", "source": name, "reason": reason})
        self._console_print(f"  [dim]{name}: skipped ({reason})[/dim]", Verbosity.VERBOSE)

    def source_fetched(self, name: str, count: int) -> None:
        self._source_start = time.time()
        log = self.run_log.get_or_create_source(name)
        log.transcripts += count
        self._write_event({"event": "source_fetched", "source": name, "transcripts": count})
        self._console_print(f"  [bold]{name}:[/bold] {count} transcripts", Verbosity.VERBOSE)

    def source_error(self, name: str, reason: str) -> None:
        self._write_event({"event": "source_error", "source": name, "reason": reason})
        self._console_print(f"  [red]{name}:[/red] {reason}", Verbosity.DEFAULT)

    # -- Transcript events --

    def transcript_processed(self, source: str, transcript_id: str, created: int, bumped: int) -> None:
        log = self.run_log.get_or_create_source(source)
        log.processed_ids.append(transcript_id)
        log.created += created
        log.bumped += bumped
        log.time_seconds = time.time() - self._source_start

        self._write_event({
            "event": "transcript_processed",
            "source": source,
            "transcript_id": transcript_id,
            "created": created,
            "bumped": bumped,
        })
        self._console_print(
            f"      [green]+[/green] {transcript_id} ({created} new, {bumped} merged)",
            Verbosity.VERBOSE,
        )

    def transcript_failed(self, source: str, transcript_id: str, reason: str) -> None:
        log = self.run_log.get_or_create_source(source)
        log.failed_ids.append(transcript_id)

        self._write_event({
            "event": "transcript_failed",
            "source": source,
            "transcript_id": transcript_id,
            "reason": reason,
        })
        self._console_print(f"      [red]x[/red] {transcript_id}: {reason}", Verbosity.VERBOSE)

    def analyzer_result(self, analyzer: str, transcript_id: str, count: int) -> None:
        self._write_event({
            "event": "analyzer_result",
            "analyzer": analyzer,
            "transcript_id": transcript_id,
            "observations": count,
        })
        self._console_print(f"        [dim]{analyzer}: {count} observations[/dim]", Verbosity.DEBUG)

    def oracle_call(self, source: str, kind: str) -> None:
        log = self.run_log.get_or_create_source(source)
        log.oracle_calls += 1
        self._write_event({"event": "oracle_call", "source": source, "kind": kind})

    def observation_error(self, transcript_id: str, reason: str) -> None:
        self._write_event({
            "event": "observation_error",
            "transcript_id": transcript_id,
            "reason": reason,
        })
        self._console_print(f"        [yellow]![/yellow] {reason}", Verbosity.DEBUG)

    def close(self) -> None:
        """Close the log file if open."""
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
