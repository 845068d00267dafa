"""Run the full pipeline and write the aggregated result as JSON."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from ..api import build_history
from ..exceptions import ChronicleError
from ..execution import AggregatedResult, ExecutionCoordinator
from ..logging_config import setup_logging
from ..serializers import result_to_dict
from ..sources import JsonArtifactSource
from . import app
from ._common import console, resolve_config


def _print_summary(result: AggregatedResult) -> None:
    stats = result.statistics
    summary = result.summary

    console.print()
    console.print(
        f"[bold]{stats.period_count}[/bold] {result.strategy.value} periods, "
        f"[bold]{stats.total_commits}[/bold] commits, "
        f"[bold]{len(stats.contributors)}[/bold] contributors"
    )
    console.print(
        f"Cache: [green]{summary.cache_hits} hits[/green], "
        f"[yellow]{summary.cache_misses} misses[/yellow]  "
        f"Batches: {summary.batches}  Retries: {summary.retries}"
    )
    if stats.artifact_references:
        console.print(f"Artifact references: [cyan]{stats.artifact_references}[/cyan]")
    if summary.placeholders:
        console.print(f"[red]{summary.placeholders} periods could not be analyzed[/red]")
    for gap in summary.data_gaps:
        console.print(f"[dim]{gap}[/dim]")
    for warning in summary.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if summary.cancelled:
        console.print("[yellow]Run was cancelled; the result is incomplete[/yellow]")


@app.command()
def run(
    path: Path = typer.Argument(
        Path("."),
        help="Git repository to analyze",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the JSON result here (default: stdout)",
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
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-j",
        help="Periods analyzed in parallel (1-5)",
        min=1,
        max=5,
    ),
    repo: Optional[str] = typer.Option(
        None,
        "--repo",
        help="GitHub repository (owner/name) to match issues and PRs against",
    ),
    artifacts_file: Optional[Path] = typer.Option(
        None,
        "--artifacts-file",
        help="JSON export of issues/PRs to match against instead of GitHub",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the on-disk cache"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Plan, analyze and aggregate the history, then emit JSON.

    [bold cyan]Examples:[/bold cyan]

      chronicle run -o history.json

      chronicle run ../my-repo --strategy release --repo octo/my-repo

      chronicle run --artifacts-file issues.json --concurrency 5 --no-cache
    """
    setup_logging(verbose=verbose)

    artifact_source = JsonArtifactSource(artifacts_file) if artifacts_file else None
    overrides = resolve_config(
        strategy=strategy,
        concurrency=concurrency,
        no_cache=no_cache,
        repository=repo,
    )

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(bar_width=40, complete_style="cyan", finished_style="green"),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )
    task = progress.add_task("Analyzing periods", total=None)

    def attach(coordinator: ExecutionCoordinator) -> None:
        coordinator.on_progress = lambda done, total: progress.update(task, completed=done, total=total)

    try:
        with progress:
            result = build_history(
                str(path),
                config_file=config,
                artifact_source=artifact_source,
                since=since,
                until=until,
                coordinator_hook=attach,
                **overrides,
            )
    except ChronicleError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    document = json.dumps(result_to_dict(result), indent=2)
    if output is None:
        typer.echo(document)
    else:
        output.write_text(document + "\n", encoding="utf-8")
        console.print(f"[green]Wrote[/green] {output}")
        _print_summary(result)
