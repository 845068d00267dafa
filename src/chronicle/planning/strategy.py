"""Frequency-based period strategy detection."""

from __future__ import annotations

from typing import Optional, Sequence

from ..config import PlanningConfig
from ..exceptions import ConfigConflict
from ..logging_config import get_logger
from .models import Release, RepositoryStats, Strategy

logger = get_logger(__name__)


def detect_strategy(
    stats: Optional[RepositoryStats],
    releases: Sequence[Release],
    config: PlanningConfig,
) -> Strategy:
    """Choose a period granularity from commit frequency.

    Heuristic, in order:
        - commits/week above daily_threshold -> DAILY
        - commits/week above weekly_threshold -> WEEKLY
        - project older than mature_age_days -> MONTHLY
        - releases exist -> RELEASE
        - otherwise MONTHLY

    The thresholds are approximations; nothing about them is optimal.
    """
    if stats is None or stats.commit_count == 0:
        return Strategy.RELEASE if releases else Strategy.MONTHLY

    rate = stats.commits_per_week
    if rate > config.daily_threshold:
        chosen = Strategy.DAILY
    elif rate > config.weekly_threshold:
        chosen = Strategy.WEEKLY
    elif stats.age_days > config.mature_age_days:
        chosen = Strategy.MONTHLY
    elif releases:
        chosen = Strategy.RELEASE
    else:
        chosen = Strategy.MONTHLY

    logger.debug(
        f"Detected {chosen.value} strategy "
        f"({rate:.1f} commits/week over {stats.age_days:.0f} days, {len(releases)} releases)"
    )
    return chosen


def resolve_strategy(
    stats: Optional[RepositoryStats],
    releases: Sequence[Release],
    config: PlanningConfig,
) -> tuple[Strategy, Strategy, list[ConfigConflict]]:
    """Apply an explicit strategy over the detected one.

    Returns:
        (strategy to use, detected strategy, conflicts)
    """
    detected = detect_strategy(stats, releases, config)
    if config.strategy == "auto":
        return detected, detected, []

    explicit = Strategy(config.strategy)
    conflicts = []
    if explicit is Strategy.RELEASE and not releases:
        conflicts.append(ConfigConflict("strategy", explicit.value, "no releases"))
    elif explicit is not detected:
        conflicts.append(ConfigConflict("strategy", explicit.value, detected.value))

    for conflict in conflicts:
        logger.warning(f"{conflict}; using the configured strategy")
    return explicit, detected, conflicts
