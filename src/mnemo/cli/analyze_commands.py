"""Analyze command: mnemo analyze."""

from __future__ import annotations

import sys
from datetime import datetime, timezone

import click
from rich import box
from rich.panel import Panel
from rich.table import Table

from mnemo.cli.main import console, workspace_or_exit
from mnemo.core.errors import MnemoError
from mnemo.core.logging import AnalysisLogger, Verbosity

STATUS_STYLES = {
    "success": "green",
    "partial_failure": "yellow",
    "failure": "red",
}


def _parse_since(ctx: click.Context, param: click.Parameter, value: str | None) -> datetime | None:
    """Click callback: ISO date or datetime, interpreted as UTC when naive."""
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"expected an ISO date such as 2026-01-31, got {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@click.command()
@click.option("--full", "force_full", is_flag=True, default=False, help="Ignore the last run and analyze everything")
@click.option("--since", default=None, callback=_parse_since, help="Only analyze sessions at or after this date")
@click.option("--verbose", "-v", count=True, help="Verbosity level: -v per-session, -vv per-analyzer details")
def analyze(force_full: bool, since: datetime | None, verbose: int):
    """Analyze new sessions and update observations."""
    from mnemo.engine import AnalysisEngine, AnalysisOptions
    from mnemo.oracle import build_oracle
    from mnemo.sources import configured_sources

    ws = workspace_or_exit()
    try:
        oracle = build_oracle(ws.settings)
    except MnemoError as e:
        console.print(f"[red]Error configuring oracle:[/red] {e}")
        sys.exit(1)

    run_logger = AnalysisLogger(
        verbosity=Verbosity(min(verbose, Verbosity.DEBUG)),
        logs_dir=ws.settings.logs_dir,
    )
    engine = AnalysisEngine(
        sources=configured_sources(ws.settings),
        oracle=oracle,
        observations=ws.observations,
        state=ws.state,
        settings=ws.settings,
        patterns=ws.patterns,
        run_logger=run_logger,
    )
    result = engine.run(AnalysisOptions(force_full=force_full, since=since))

    ws.hierarchy.refresh_long_term_counts()
    counts = ws.hierarchy.get_counts()
    ws.state.update_counts(counts.pending, counts.long_term, counts.core)

    style = STATUS_STYLES.get(result.status, "white")
    console.print(
        Panel(
            f"[bold]Status:[/bold] [{style}]{result.status}[/{style}]\n"
            f"[bold]Sessions:[/bold] {result.sessions_processed} processed, {result.sessions_failed} failed\n"
            f"[bold]Observations:[/bold] {result.observations_created} new, {result.observations_bumped} merged\n"
            f"[bold]Duration:[/bold] {result.duration_ms} ms",
            title="[bold cyan]mnemo analyze[/bold cyan]",
            border_style="cyan",
        )
    )

    if result.errors:
        table = Table(title="Errors", box=box.SIMPLE)
        table.add_column("Session", style="dim")
        table.add_column("Source")
        table.add_column("Code")
        table.add_column("Reason")
        for err in result.errors:
            table.add_row(err.session_id, err.source, err.code.value, err.reason)
        console.print(table)

    if run_logger.log_path is not None:
        console.print(f"[dim]Log: {run_logger.log_path}[/dim]")

    if result.status == "failure":
        sys.exit(1)
