"""Period planning: strategy detection, releases, and calendar windows."""

from .calendar import advance, align_down
from .models import (
    Period,
    PeriodKind,
    PeriodMode,
    PeriodPlan,
    Release,
    RepositoryStats,
    Strategy,
)
from .planner import PeriodPlanner, compute_periods, period_revision, validate_range
from .releases import VersionBump, compute_releases, normalize_version, version_key
from .strategy import detect_strategy, resolve_strategy

__all__ = [
    "Period",
    "PeriodKind",
    "PeriodMode",
    "PeriodPlan",
    "PeriodPlanner",
    "Release",
    "RepositoryStats",
    "Strategy",
    "VersionBump",
    "advance",
    "align_down",
    "compute_periods",
    "compute_releases",
    "detect_strategy",
    "normalize_version",
    "period_revision",
    "resolve_strategy",
    "validate_range",
    "version_key",
]
