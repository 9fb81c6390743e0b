"""mnemo CLI: main entry point and shared utilities."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

import click
from rich.console import Console

from mnemo.config import Settings, get_settings
from mnemo.core.config import PromotionThresholds
from mnemo.core.errors import MnemoError

if TYPE_CHECKING:
    from mnemo.memory.hierarchy import MemoryHierarchy
    from mnemo.storage import LongTermMemoryStore, ObservationStore, PatternStore, RunStateStore

console = Console()

# Colors per memory level
LEVEL_COLORS = {
    "pending": "yellow",
    "long_term": "blue",
    "core": "green",
}


@dataclass
class Workspace:
    """Stores and hierarchy opened from one settings object."""

    settings: Settings
    observations: ObservationStore
    memories: LongTermMemoryStore
    patterns: PatternStore
    state: RunStateStore
    hierarchy: MemoryHierarchy


def open_workspace(settings: Settings | None = None) -> Workspace:
    from mnemo.memory.hierarchy import MemoryHierarchy
    from mnemo.storage import LongTermMemoryStore, ObservationStore, PatternStore, RunStateStore
    from mnemo.surfaces import configured_destinations

    settings = settings or get_settings()
    settings.ensure_storage_dir()
    observations = ObservationStore(settings.observations_path)
    memories = LongTermMemoryStore(settings.long_term_memory_path)
    return Workspace(
        settings=settings,
        observations=observations,
        memories=memories,
        patterns=PatternStore(settings.patterns_path, expiration_days=settings.pattern_expiration_days),
        state=RunStateStore(settings.state_path),
        hierarchy=MemoryHierarchy(
            observations,
            memories,
            configured_destinations(settings),
            PromotionThresholds.from_settings(settings),
        ),
    )


def workspace_or_exit() -> Workspace:
    try:
        return open_workspace()
    except MnemoError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
def main():
    """mnemo: pattern memory for coding assistant sessions."""
    pass


def cli():
    """Entrypoint that loads .env before running the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    main()


# Import subcommand modules to register commands
from mnemo.cli.analyze_commands import analyze  # noqa: E402, F401
from mnemo.cli.memory_commands import deny, patterns, promote, status  # noqa: E402, F401

main.add_command(analyze)
main.add_command(status)
main.add_command(promote)
main.add_command(deny)
main.add_command(patterns)
