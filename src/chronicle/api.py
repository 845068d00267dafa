"""Public API for Chronicle.

This module provides the main entry points. Users should call
build_history() instead of wiring planner, coordinator and adapters by hand.

Example:
    >>> from chronicle import build_history
    >>>
    >>> # Simple usage
    >>> result = build_history("/path/to/repo")
    >>>
    >>> # With customization
    >>> result = build_history(
    ...     "/path/to/repo",
    ...     strategy="weekly",
    ...     since="2024-01-01",
    ...     max_concurrency=4,
    ... )
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .cache import ChronicleCache
from .config import ChronicleConfig, load_config
from .execution import AggregatedResult, ExecutionCoordinator, retry_transient
from .logging_config import get_logger, setup_logging
from .planning import PeriodPlan, PeriodPlanner, validate_range
from .planning.planner import DateInput
from .sources import (
    ArtifactCatalog,
    ArtifactSource,
    CommitRange,
    CommitSource,
    GitCommitSource,
    GitHubArtifactSource,
    HeuristicOracle,
    TextOracle,
)

logger = get_logger(__name__)


def _setup_logging(overrides: dict) -> None:
    if "verbose" in overrides or "quiet" in overrides:
        setup_logging(verbose=bool(overrides.get("verbose")), quiet=bool(overrides.get("quiet")))


def plan_with(
    commit_source: CommitSource,
    config: ChronicleConfig,
    since: DateInput = None,
    until: DateInput = None,
    now: Optional[datetime] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> PeriodPlan:
    """Plan periods, retrying transient commit-source failures.

    Raises:
        InputError: If the range is malformed (before any retrieval happens)
        RetriesExhausted: If the commit source keeps failing transiently
    """
    validate_range(since, until)
    planner = PeriodPlanner(commit_source, config.planning, now=now)
    execution = config.execution
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return retry_transient(
        lambda: planner.plan(since, until),
        max_retries=execution.max_retries,
        backoff_base=execution.backoff_base_seconds,
        backoff_max=execution.backoff_max_seconds,
        **kwargs,
    )


def plan_history(
    path: str = ".",
    config_file: Optional[Path] = None,
    commit_source: Optional[CommitSource] = None,
    since: DateInput = None,
    until: DateInput = None,
    now: Optional[datetime] = None,
    **overrides,
) -> PeriodPlan:
    """Plan the periods of a repository without analyzing them.

    Args:
        path: Path to the git repository (ignored when commit_source is given)
        config_file: Optional explicit config file path
        commit_source: Injected Commit Source (default: GitCommitSource on path)
        since: Inclusive lower bound of the history
        until: Exclusive upper bound of the history
        now: Reference time for the "Unreleased" relabel
        **overrides: Configuration overrides (e.g. strategy="monthly")

    Returns:
        PeriodPlan with strategy, periods, releases and warnings
    """
    _setup_logging(overrides)
    validate_range(since, until)
    config = load_config(config_file=config_file, **overrides)

    source = commit_source or GitCommitSource(path, timeout=config.execution.call_timeout_seconds)
    return plan_with(source, config, since=since, until=until, now=now)


def build_history(
    path: str = ".",
    config_file: Optional[Path] = None,
    commit_source: Optional[CommitSource] = None,
    oracle: Optional[TextOracle] = None,
    artifact_source: Optional[ArtifactSource] = None,
    since: DateInput = None,
    until: DateInput = None,
    now: Optional[datetime] = None,
    coordinator_hook: Optional[Callable[[ExecutionCoordinator], None]] = None,
    **overrides,
) -> AggregatedResult:
    """Plan, analyze and aggregate the history of a repository.

    This is the main entry point for Chronicle. It orchestrates the full
    pipeline:
    1. Validate the date range and load configuration
    2. Build default adapters for anything not injected
    3. Plan periods
    4. Run the execution coordinator (cache-first, bounded concurrency)
    5. Return the aggregated result

    Args:
        path: Path to the git repository (ignored when commit_source is given)
        config_file: Optional explicit config file path
        commit_source: Injected Commit Source (default: GitCommitSource on path)
        oracle: Injected Text Oracle (default: HeuristicOracle)
        artifact_source: Injected Artifact Source (default: GitHub when a
            repository is configured, otherwise none and matching is skipped)
        since: Inclusive lower bound of the history
        until: Exclusive upper bound of the history
        now: Reference time for the "Unreleased" relabel
        coordinator_hook: Called with the coordinator before it runs, e.g. to
            attach a progress callback or keep a handle for cancel()
        **overrides: Configuration overrides (e.g. strategy="weekly", verbose=True)

    Returns:
        AggregatedResult ready for the document assembler

    Raises:
        InputError: If the date range is malformed
        ConfigurationError: If configuration is invalid
    """
    _setup_logging(overrides)
    since_dt, until_dt = validate_range(since, until)

    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Configuration loaded: fingerprint {config.fingerprint()}")

    timeout = config.execution.call_timeout_seconds
    source = commit_source or GitCommitSource(path, timeout=timeout)
    text_oracle = oracle or HeuristicOracle()

    cache = ChronicleCache.from_config(config)

    catalog = None
    owned_source: Optional[GitHubArtifactSource] = None
    if artifact_source is None and config.repository:
        owned_source = GitHubArtifactSource(timeout=timeout)
        artifact_source = owned_source
    if artifact_source is not None:
        catalog = ArtifactCatalog(artifact_source, config.repository or str(path), cache=cache)

    try:
        plan = plan_with(source, config, since=since, until=until, now=now)

        coordinator = ExecutionCoordinator(source, text_oracle, config, cache=cache, catalog=catalog)
        if coordinator_hook is not None:
            coordinator_hook(coordinator)

        result = coordinator.run(
            list(plan.periods),
            plan.strategy,
            warnings=plan.warnings,
            commit_range=CommitRange(since_dt, until_dt),
        )
    finally:
        if owned_source is not None:
            owned_source.close()

    logger.info(
        f"History built: {result.statistics.period_count} periods, "
        f"{result.statistics.total_commits} commits, "
        f"{result.summary.cache_hits} cache hits"
    )
    return result
