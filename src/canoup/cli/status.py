"""
canoup CLI - Status command.

Shows the state of the local mirror without fetching or changing it.
"""

import typer
from rich.console import Console
from rich.table import Table

from canoup.cli.update import load_cli_config
from canoup.core.sync import MirrorStatus, SyncService

console = Console()


def _short(sha: str | None) -> str:
    return sha[:12] if sha else "[dim]-[/dim]"


def render_status(status: MirrorStatus) -> Table:
    """Build the status table for a mirror."""
    table = Table(title="canoup status", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Mirror", str(status.mirror_dir))
    if not status.is_repository:
        table.add_row("Repository", "[yellow]not cloned yet[/yellow]")
    else:
        table.add_row("Branch", status.branch)
        table.add_row("Local tip", _short(status.branch_tip))
        table.add_row("Remote-tracking tip", _short(status.tracking_tip))
        if status.head_detached:
            table.add_row("HEAD", "[yellow]detached[/yellow]")
        if status.conflicted_paths:
            table.add_row(
                "Conflicts",
                "[red]" + ", ".join(status.conflicted_paths) + "[/red]",
            )
        elif status.dirty:
            table.add_row("Working tree", "[yellow]modified[/yellow]")
        else:
            table.add_row("Working tree", "[green]clean[/green]")
    table.add_row("Installed", "[green]yes[/green]" if status.installed else "[yellow]no[/yellow]")
    return table


def status(ctx: typer.Context) -> None:
    """
    Show the local mirror and install state.

    Examples:
        canoup status
    """
    overrides = ctx.obj.get("overrides", {}) if ctx.obj else {}
    config = load_cli_config(**overrides)
    mirror_status = SyncService.from_config(config).status()
    console.print(render_status(mirror_status))
