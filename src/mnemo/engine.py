"""Analysis engine: sources → analyzers + oracle → deduplicated observations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from mnemo.analyzers import PatternAnalyzer, default_analyzers
from mnemo.core.errors import ErrorCode, MnemoError, OracleError
from mnemo.core.logging import AnalysisLogger
from mnemo.core.models import Observation, Transcript, utcnow

if TYPE_CHECKING:
    from mnemo.config import Settings
    from mnemo.oracle.base import SemanticOracle
    from mnemo.sources.base import TranscriptSource
    from mnemo.storage.observations import ObservationStore
    from mnemo.storage.patterns import PatternStore
    from mnemo.storage.state import RunStateStore

logger = logging.getLogger(__name__)

NO_SESSION = "N/A"


@dataclass
class AnalysisOptions:
    force_full: bool = False
    since: datetime | None = None


@dataclass
class AnalysisError:
    """One failed unit of work: a transcript, a draft, a source fetch, or the state write."""

    session_id: str
    source: str
    reason: str
    code: ErrorCode = ErrorCode.INVALID_STATE


@dataclass
class AnalysisResult:
    status: str = "success"  # "success" | "partial_failure" | "failure"
    sessions_processed: int = 0
    sessions_failed: int = 0
    observations_created: int = 0
    observations_bumped: int = 0
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    duration_ms: int = 0
    errors: list[AnalysisError] = field(default_factory=list)


def resolve_status(processed: int, failed: int, errors: int) -> str:
    if failed == 0 and errors == 0:
        return "success"
    if processed == 0:
        return "failure"
    return "partial_failure"


class AnalysisEngine:
    """Runs one analysis pass over every enabled transcript source.

    Work is strictly sequential. A failure in one transcript, one draft or
    one source is recorded on the result and the run moves on.
    """

    def __init__(
        self,
        sources: list[TranscriptSource],
        oracle: SemanticOracle,
        observations: ObservationStore,
        state: RunStateStore,
        settings: Settings | None = None,
        analyzers: list[PatternAnalyzer] | None = None,
        patterns: PatternStore | None = None,
        run_logger: AnalysisLogger | None = None,
    ):
        self.sources = sources
        self.oracle = oracle
        self.observations = observations
        self.state = state
        self.settings = settings
        self.analyzers = analyzers if analyzers is not None else default_analyzers()
        self.patterns = patterns
        self.log = run_logger or AnalysisLogger()

    def resolve_cutoff(self, options: AnalysisOptions) -> datetime | None:
        if options.since is not None:
            return options.since
        if options.force_full:
            return None
        return self.state.last_analysis_run

    def _enabled(self, source: TranscriptSource) -> bool:
        if self.settings is None:
            return True
        return self.settings.source_enabled(source.name)

    def run(self, options: AnalysisOptions | None = None) -> AnalysisResult:
        try:
            return self._run(options or AnalysisOptions())
        finally:
            self.log.close()

    def _run(self, options: AnalysisOptions) -> AnalysisResult:
        result = AnalysisResult(started_at=utcnow())
        t0 = time.time()
        cutoff = self.resolve_cutoff(options)

        self.log.run_start(cutoff, [s.name for s in self.sources])

        for source in self.sources:
            if not self._enabled(source):
                self.log.source_skipped(source.name, "disabled")
                continue
            if not source.is_available():
                self.log.source_skipped(source.name, "unavailable")
                continue

            try:
                transcripts = source.get_sessions(cutoff)
            except MnemoError as exc:
                result.errors.append(AnalysisError(NO_SESSION, source.name, str(exc), exc.code))
                self.log.source_error(source.name, str(exc))
                continue
            except OSError as exc:
                result.errors.append(
                    AnalysisError(NO_SESSION, source.name, str(exc), ErrorCode.SESSION_READ_FAILED)
                )
                self.log.source_error(source.name, str(exc))
                continue

            self.log.source_fetched(source.name, len(transcripts))
            for transcript in transcripts:
                self._process(transcript, source.name, result)

        try:
            self.state.update_last_analysis_run(result.started_at)
        except MnemoError as exc:
            result.errors.append(AnalysisError(NO_SESSION, "state", str(exc), exc.code))

        result.status = resolve_status(result.sessions_processed, result.sessions_failed, len(result.errors))
        if result.errors:
            try:
                self.state.record_error(f"{len(result.errors)} error(s); first: {result.errors[0].reason}")
            except MnemoError as exc:
                logger.warning("Could not record run error: %s", exc)

        result.finished_at = utcnow()
        elapsed = time.time() - t0
        result.duration_ms = int(elapsed * 1000)
        self.log.run_finish(elapsed, result.status)
        return result

    def _process(self, transcript: Transcript, source: str, result: AnalysisResult) -> None:
        drafts: list[Observation] = []
        for analyzer in self.analyzers:
            found = analyzer.analyze(transcript, transcript.messages)
            self.log.analyzer_result(analyzer.name, transcript.id, len(found))
            drafts.extend(found)

        try:
            self.log.oracle_call(source, "extract")
            drafts.extend(self.oracle.extract_patterns(transcript))
        except OracleError as exc:
            self._fail(transcript, source, result, str(exc), exc.code)
            return
        except Exception as exc:
            logger.warning("Extraction for %s raised %s", transcript.id, type(exc).__name__, exc_info=True)
            self._fail(transcript, source, result, f"{type(exc).__name__}: {exc}", ErrorCode.LLM_CALL_FAILED)
            return

        created = bumped = 0
        for draft in drafts:
            try:
                outcome = self.observations.merge_draft(draft, self.oracle, transcript.id)
            except MnemoError as exc:
                result.errors.append(AnalysisError(transcript.id, source, str(exc), exc.code))
                self.log.observation_error(transcript.id, str(exc))
                continue
            if outcome.created:
                created += 1
            else:
                bumped += 1

            if self.patterns is not None:
                try:
                    self.patterns.save_pattern(outcome.observation)
                except MnemoError as exc:
                    result.errors.append(AnalysisError(transcript.id, "patterns", str(exc), exc.code))
                    self.log.observation_error(transcript.id, str(exc))

        result.sessions_processed += 1
        result.observations_created += created
        result.observations_bumped += bumped
        self.log.transcript_processed(source, transcript.id, created, bumped)

    def _fail(
        self, transcript: Transcript, source: str, result: AnalysisResult, reason: str, code: ErrorCode
    ) -> None:
        result.sessions_failed += 1
        result.errors.append(AnalysisError(transcript.id, source, reason, code))
        self.log.transcript_failed(source, transcript.id, reason)
