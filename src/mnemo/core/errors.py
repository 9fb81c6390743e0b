"""mnemo error types and utilities."""

from __future__ import annotations

import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any


def atomic_write(path: Path, content: str) -> None:
    """Write content to a file atomically using temp file + rename.

    Writes to a temporary file in the same directory, fsyncs it,
    then atomically replaces the target path. The parent directory
    is created if missing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.write(fd, content.encode())
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp, str(path))
    except BaseException:
        try:
            os.close(fd)
        except OSError:
            pass
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"
    SESSION_READ_FAILED = "SESSION_READ_FAILED"
    LLM_CALL_FAILED = "LLM_CALL_FAILED"
    OBSERVATION_STORE_FAILED = "OBSERVATION_STORE_FAILED"
    ADAPTER_UNAVAILABLE = "ADAPTER_UNAVAILABLE"
    FILE_WRITE_FAILED = "FILE_WRITE_FAILED"
    INVALID_STATE = "INVALID_STATE"


class MnemoError(Exception):
    """Base exception for mnemo.

    Carries a machine-readable ``code`` and optional ``context`` dict
    (offending id, path, source name) for structured error records.
    """

    default_code = ErrorCode.INVALID_STATE

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or self.default_code
        self.context = context or {}


class ConfigError(MnemoError):
    """Missing or invalid configuration."""

    default_code = ErrorCode.CONFIG_INVALID


class SourceError(MnemoError):
    """Error reading transcripts from a source."""

    default_code = ErrorCode.SESSION_READ_FAILED


class OracleError(MnemoError):
    """Error calling the semantic extraction oracle."""

    default_code = ErrorCode.LLM_CALL_FAILED


class StoreError(MnemoError):
    """Error in a persistent store operation."""

    default_code = ErrorCode.OBSERVATION_STORE_FAILED


class DestinationError(MnemoError):
    """Error writing to a core memory destination."""

    default_code = ErrorCode.FILE_WRITE_FAILED


class InvalidStateError(MnemoError):
    """Rejected lifecycle transition."""

    default_code = ErrorCode.INVALID_STATE
