"""Show the period plan for a repository."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..api import plan_history
from ..exceptions import ChronicleError
from ..logging_config import setup_logging
from ..planning import PeriodMode, PeriodPlan
from . import app
from ._common import console, resolve_config


def render_plan(plan: PeriodPlan) -> Table:
    """Rich table with one row per period."""
    title = f"{plan.strategy.value.title()} periods"
    if plan.detected_strategy is not None and plan.detected_strategy is not plan.strategy:
        title += f" (detected: {plan.detected_strategy.value})"

    table = Table(title=title, show_lines=False)
    table.add_column("Period", style="cyan")
    table.add_column("Label")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")
    table.add_column("Commits", justify="right", style="yellow")
    table.add_column("Tag", style="green")
    table.add_column("Flags", style="magenta")

    for period in plan.periods:
        flags = []
        if period.is_first:
            flags.append("first")
        if period.is_partial:
            flags.append("partial")
        if period.mode is PeriodMode.SUMMARY:
            flags.append("summary")

        tag = period.tag or ""
        if period.superseded_tags:
            tag += f" (supersedes {', '.join(period.superseded_tags)})"

        table.add_row(
            period.id,
            period.label,
            period.start.strftime("%Y-%m-%d %H:%M"),
            period.end.strftime("%Y-%m-%d %H:%M"),
            str(period.commit_count),
            tag,
            ", ".join(flags),
        )
    return table


@app.command()
def plan(
    path: Path = typer.Argument(
        Path("."),
        help="Git repository to plan",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    strategy: Optional[str] = typer.Option(
        None,
        "--strategy",
        "-s",
        help="auto, daily, weekly, monthly or release",
    ),
    since: Optional[str] = typer.Option(None, "--since", help="Start date (inclusive, ISO)"),
    until: Optional[str] = typer.Option(None, "--until", help="End date (exclusive, ISO)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Show how the history would be split into periods.

    [bold cyan]Examples:[/bold cyan]

      chronicle plan

      chronicle plan ../my-repo --strategy weekly --since 2024-01-01
    """
    setup_logging(verbose=verbose)

    try:
        result = plan_history(
            str(path),
            config_file=config,
            since=since,
            until=until,
            **resolve_config(strategy=strategy),
        )
    except ChronicleError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not result.periods:
        console.print("[yellow]No commits found in the specified range.[/yellow]")
        raise typer.Exit(0)

    console.print(render_plan(result))
    if result.releases:
        console.print(f"[dim]{len(result.releases)} releases detected[/dim]")
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
