"""Cache management commands."""

from pathlib import Path
from typing import Optional

import typer

from ..cache import ChronicleCache
from ..exceptions import ChronicleError
from . import app
from ._common import console, load_settings

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Configuration file (TOML)",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
)


def _open_cache(config: Optional[Path]) -> ChronicleCache:
    try:
        settings = load_settings(config)
    except ChronicleError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    return ChronicleCache.from_config(settings)


@app.command()
def cache_info(config: Optional[Path] = _CONFIG_OPTION):
    """Show cache information and statistics."""
    cache = _open_cache(config)
    try:
        stats = cache.stats()
    finally:
        cache.close()

    console.print("[bold cyan]Chronicle Cache Info[/bold cyan]")
    console.print()

    if stats.get("enabled"):
        console.print("Status: [green]Enabled[/green]")
        console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
        console.print(f"Entries: [yellow]{stats.get('size', 0)}[/yellow]")
        console.print(f"Period analyses: [yellow]{stats.get('periods', 0)}[/yellow]")
        console.print(f"Artifact lists: [yellow]{stats.get('artifact_partitions', 0)}[/yellow]")
        console.print(f"Fingerprint: [dim]{stats.get('fingerprint') or 'none'}[/dim]")
        console.print(f"Size: [yellow]{stats.get('volume', 0)} bytes[/yellow]")
    else:
        console.print("Status: [red]Disabled[/red]")


@app.command()
def cache_clear(config: Optional[Path] = _CONFIG_OPTION):
    """Clear the analysis and artifact cache."""
    cache = _open_cache(config)

    if not cache.enabled:
        console.print("[yellow]Cache is disabled[/yellow]")
        raise typer.Exit(0)

    try:
        cache.clear()
    finally:
        cache.close()
    console.print("[green]Cache cleared successfully[/green]")
