"""Run state: last successful analysis, last error, level counts."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from mnemo.core.errors import ErrorCode, StoreError, atomic_write
from mnemo.core.models import parse_timestamp


@dataclass
class RunState:
    last_analysis_run: datetime | None = None
    last_error: str | None = None
    observation_count: int = 0
    long_term_memory_count: int = 0
    core_memory_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "last_analysis_run": self.last_analysis_run.isoformat() if self.last_analysis_run else None,
            "last_error": self.last_error,
            "observation_count": self.observation_count,
            "long_term_memory_count": self.long_term_memory_count,
            "core_memory_count": self.core_memory_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunState:
        return cls(
            last_analysis_run=parse_timestamp(data.get("last_analysis_run")),
            last_error=data.get("last_error"),
            observation_count=int(data.get("observation_count", 0)),
            long_term_memory_count=int(data.get("long_term_memory_count", 0)),
            core_memory_count=int(data.get("core_memory_count", 0)),
        )


class RunStateStore:
    """Single JSON document at ``path``; every update rewrites it atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.state = self._load()

    def _load(self) -> RunState:
        if not self.path.exists():
            return RunState()
        try:
            return RunState.from_dict(json.loads(self.path.read_text()))
        except (ValueError, TypeError, AttributeError) as exc:
            raise StoreError(
                f"Failed to parse {self.path.name}: invalid JSON",
                ErrorCode.OBSERVATION_STORE_FAILED,
                {"path": str(self.path), "error": str(exc)},
            ) from exc

    def _save(self) -> None:
        try:
            atomic_write(self.path, json.dumps(self.state.to_dict(), indent=2))
        except OSError as exc:
            raise StoreError(
                f"Failed to write {self.path.name}: {exc}",
                ErrorCode.FILE_WRITE_FAILED,
                {"path": str(self.path)},
            ) from exc

    @property
    def last_analysis_run(self) -> datetime | None:
        return self.state.last_analysis_run

    def update_last_analysis_run(self, when: datetime) -> None:
        self.state.last_analysis_run = when
        self.state.last_error = None
        self._save()

    def record_error(self, message: str) -> None:
        self.state.last_error = message
        self._save()

    def update_counts(self, pending: int, long_term: int, core: int) -> None:
        self.state.observation_count = pending
        self.state.long_term_memory_count = long_term
        self.state.core_memory_count = core
        self._save()
