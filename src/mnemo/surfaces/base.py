"""Base class for core memory destinations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass
class CoreMemoryDestination(ABC):
    """A user-facing document that core memories are appended to.

    Examples: the assistant's global CLAUDE.md, a project AGENTS.md.
    """

    name: str = ""

    @abstractmethod
    def get_path(self) -> Path:
        """Location of the destination document."""
        ...

    @abstractmethod
    def read(self) -> str:
        """Current content, or "" if the destination does not exist yet."""
        ...

    @abstractmethod
    def append(self, text: str) -> None:
        """Append ``text``, creating the destination if needed.

        Raises:
            DestinationError: if the write fails.
        """
        ...
