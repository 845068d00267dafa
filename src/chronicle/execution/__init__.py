"""Execution: batching, retries, per-period analysis and aggregation."""

from .aggregate import aggregate
from .analyzer import PeriodAnalyzer, compute_statistics, placeholder_analysis
from .batching import plan_batches
from .coordinator import ExecutionCoordinator
from .models import (
    AggregatedResult,
    CacheStatus,
    CategorizedChange,
    ExecutionSummary,
    GlobalStatistics,
    Impact,
    PeriodAnalysis,
    PeriodStatistics,
    Reattribution,
)
from .retry import backoff_delay, call_pool, call_with_timeout, retry_transient

__all__ = [
    "AggregatedResult",
    "CacheStatus",
    "CategorizedChange",
    "ExecutionCoordinator",
    "ExecutionSummary",
    "GlobalStatistics",
    "Impact",
    "PeriodAnalysis",
    "PeriodAnalyzer",
    "PeriodStatistics",
    "Reattribution",
    "aggregate",
    "backoff_delay",
    "call_pool",
    "call_with_timeout",
    "compute_statistics",
    "placeholder_analysis",
    "plan_batches",
    "retry_transient",
]
