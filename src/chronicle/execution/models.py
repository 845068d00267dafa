"""Data models for period analysis and the aggregated hand-off result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..matching.models import ArtifactReference
from ..planning.models import Period, Strategy
from ..sources.models import CommitRecord


class CacheStatus(Enum):
    HIT = "hit"
    MISS = "miss"


class Impact(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class CategorizedChange:
    category: str
    summary: str
    commits: tuple[str, ...]
    impact: Impact = Impact.LOW


@dataclass(frozen=True)
class PeriodStatistics:
    commit_count: int = 0
    contributors: frozenset[str] = frozenset()
    files_changed: frozenset[str] = frozenset()
    insertions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class PeriodAnalysis:
    period: Period
    changes: dict[str, tuple[CategorizedChange, ...]] = field(default_factory=dict)
    statistics: PeriodStatistics = field(default_factory=PeriodStatistics)
    artifact_refs: tuple[ArtifactReference, ...] = ()
    commits: tuple[CommitRecord, ...] = ()
    cache: CacheStatus = CacheStatus.MISS
    is_placeholder: bool = False
    error: Optional[str] = None
    reattributed: tuple[str, ...] = ()  # commits whose primary period is earlier

    @property
    def change_count(self) -> int:
        return sum(len(changes) for changes in self.changes.values())


@dataclass(frozen=True)
class Reattribution:
    """A commit seen in more than one period, kept only in the earliest."""

    commit: str
    primary_period: str
    duplicate_period: str


@dataclass(frozen=True)
class GlobalStatistics:
    period_count: int = 0
    total_commits: int = 0
    contributors: frozenset[str] = frozenset()
    files_changed: frozenset[str] = frozenset()
    insertions: int = 0
    deletions: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    artifact_references: int = 0


@dataclass(frozen=True)
class ExecutionSummary:
    retries: int = 0
    placeholders: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    batches: int = 0
    data_gaps: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    reattributions: tuple[Reattribution, ...] = ()
    cancelled: bool = False


@dataclass(frozen=True)
class AggregatedResult:
    """Sole hand-off to the document assembler."""

    strategy: Strategy
    fingerprint: str
    periods: tuple[PeriodAnalysis, ...]
    statistics: GlobalStatistics
    summary: ExecutionSummary
