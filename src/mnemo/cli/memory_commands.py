"""Memory commands: mnemo status, promote, deny, patterns."""

from __future__ import annotations

import sys

import click
from rich import box
from rich.table import Table

from mnemo.cli.main import LEVEL_COLORS, console, workspace_or_exit
from mnemo.core.errors import MnemoError


@click.command()
def status():
    """Show observation and memory counts."""
    ws = workspace_or_exit()
    counts = ws.hierarchy.get_counts()

    table = Table(title="Memory levels", box=box.ROUNDED)
    table.add_column("Level", style="bold")
    table.add_column("Count", justify="right")
    table.add_row(f"[{LEVEL_COLORS['pending']}]pending observations[/]", str(counts.pending))
    table.add_row(f"[{LEVEL_COLORS['long_term']}]long-term memories[/]", str(counts.long_term))
    table.add_row(f"[{LEVEL_COLORS['core']}]core memories[/]", str(counts.core))
    console.print(table)

    last = ws.state.last_analysis_run
    console.print(f"[bold]Last analysis:[/bold] {last.isoformat() if last else 'never'}")
    if ws.state.state.last_error:
        console.print(f"[yellow]Last error:[/yellow] {ws.state.state.last_error}")

    promotable = ws.hierarchy.get_promotable_to_core()
    if promotable:
        console.print(f"[green]{len(promotable)} long-term memories ready for core[/green]")
        for memory in promotable:
            console.print(f"  {memory.id}  {memory.observation.text}")

    pending = ws.observations.get_promotable(ws.hierarchy.thresholds.observation_min_count)
    if pending:
        console.print(f"[blue]{len(pending)} observations ready for long-term[/blue]")
        for obs in pending:
            console.print(f"  {obs.id}  ({obs.count}x) {obs.text}")


@click.group()
def promote():
    """Promote observations and memories up the hierarchy."""
    pass


@promote.command("long-term")
@click.argument("observation_id")
def promote_long_term(observation_id: str):
    """Promote an observation to long-term memory."""
    ws = workspace_or_exit()
    result = ws.hierarchy.promote_to_long_term(observation_id)
    if not result.success:
        console.print(f"[red]Not promoted:[/red] {result.reason}")
        sys.exit(1)
    console.print(f"[green]Promoted[/green] {observation_id} → long-term memory {result.memory_id}")


@promote.command("core")
@click.argument("memory_id")
@click.option("--target", "targets", multiple=True, help="Destination name (repeatable); default all configured")
def promote_core(memory_id: str, targets: tuple[str, ...]):
    """Append a long-term memory to core memory destinations."""
    ws = workspace_or_exit()
    result = ws.hierarchy.promote_to_core(memory_id, list(targets) if targets else None)
    if not result.success:
        console.print(f"[red]Not promoted:[/red] {result.reason}")
        sys.exit(1)
    console.print(f"[green]Promoted[/green] {result.memory_id} → {', '.join(result.written_to)}")
    if result.reason:
        console.print(f"[yellow]{result.reason}[/yellow]")


@click.command()
@click.argument("item_id")
def deny(item_id: str):
    """Deny an observation or long-term memory (permanent)."""
    ws = workspace_or_exit()
    try:
        if ws.observations.get_by_id(item_id) is not None:
            ws.hierarchy.deny_observation(item_id)
            console.print(f"Denied observation {item_id}")
        elif ws.memories.get_by_id(item_id) is not None:
            ws.hierarchy.deny_memory(item_id)
            console.print(f"Denied memory {item_id}")
        else:
            console.print(f"[red]Not found:[/red] {item_id}")
            sys.exit(1)
    except MnemoError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
def patterns():
    """Manage the expiring pattern store."""
    pass


@patterns.command("purge")
def purge_patterns():
    """Delete patterns not seen within the expiration window."""
    ws = workspace_or_exit()
    removed = ws.patterns.purge_expired()
    console.print(
        f"Purged {removed} expired pattern(s) "
        f"(older than {ws.patterns.expiration_days} days)"
    )
