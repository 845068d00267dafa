"""Analyze a single period: fetch its commits, classify them, match artifacts."""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import Executor
from typing import Callable, Optional, Sequence, TypeVar

from ..config import MatchingConfig
from ..logging_config import get_logger
from ..matching.matcher import ArtifactMatcher, rank_references
from ..planning.calendar import to_utc
from ..planning.models import Period, PeriodMode
from ..sources.models import Artifact, Classification, CommitRange, CommitRecord
from ..sources.protocols import CommitSource, TextOracle
from .models import CategorizedChange, Impact, PeriodAnalysis, PeriodStatistics
from .retry import call_with_timeout

logger = get_logger(__name__)

T = TypeVar("T")

# Lines changed at or above which a change counts as medium / high impact
MEDIUM_IMPACT_LINES = 50
HIGH_IMPACT_LINES = 500


def impact_for(lines_changed: int) -> Impact:
    if lines_changed >= HIGH_IMPACT_LINES:
        return Impact.HIGH
    if lines_changed >= MEDIUM_IMPACT_LINES:
        return Impact.MEDIUM
    return Impact.LOW


def compute_statistics(commits: Sequence[CommitRecord]) -> PeriodStatistics:
    return PeriodStatistics(
        commit_count=len(commits),
        contributors=frozenset(c.author for c in commits),
        files_changed=frozenset(f for c in commits for f in c.stats.files),
        insertions=sum(c.stats.insertions for c in commits),
        deletions=sum(c.stats.deletions for c in commits),
    )


def placeholder_analysis(period: Period, error: str) -> PeriodAnalysis:
    """Stand-in for a period whose analysis could not be produced."""
    return PeriodAnalysis(period=period, is_placeholder=True, error=error)


class _TimedOracle:
    """Oracle wrapper that bounds every call with a timeout."""

    def __init__(self, oracle: TextOracle, timeout: float, executor: Optional[Executor] = None):
        self._oracle = oracle
        self._timeout = timeout
        self._executor = executor

    def classify(self, commit_text: str) -> Classification:
        return call_with_timeout(
            lambda: self._oracle.classify(commit_text), self._timeout, "classify", self._executor
        )

    def similarity(self, text_a: str, text_b: str) -> float:
        return call_with_timeout(
            lambda: self._oracle.similarity(text_a, text_b), self._timeout, "similarity", self._executor
        )


class PeriodAnalyzer:
    """Produce the PeriodAnalysis for one period.

    Stateless between calls, so one instance is shared by every worker thread.

    Args:
        commit_source: Commit retrieval collaborator
        oracle: Text oracle for classification and similarity
        matching: Matching section, or None to skip artifact matching
        candidates: Current artifacts for the run
        timeout: Limit on every external call
        commit_range: Requested history range; periods are clipped to it
        executor: Shared executor for timed calls (one is created per call otherwise)
    """

    def __init__(
        self,
        commit_source: CommitSource,
        oracle: TextOracle,
        matching: Optional[MatchingConfig] = None,
        candidates: Sequence[Artifact] = (),
        timeout: float = 60.0,
        commit_range: Optional[CommitRange] = None,
        executor: Optional[Executor] = None,
    ):
        self.source = commit_source
        self.timeout = timeout
        self.commit_range = commit_range or CommitRange()
        self.executor = executor
        self.oracle = _TimedOracle(oracle, timeout, executor)
        self.candidates = tuple(candidates)
        self.matcher: Optional[ArtifactMatcher] = None
        if matching is not None and self.candidates:
            self.matcher = ArtifactMatcher(self.oracle, matching)

    def analyze(self, period: Period) -> PeriodAnalysis:
        commits = self._fetch(period)
        classified = [(commit, self.oracle.classify(commit.message)) for commit in commits]

        references = []
        if self.matcher is not None:
            for commit, verdict in classified:
                references.extend(self.matcher.match(commit, self.candidates, verdict.category))

        analysis = PeriodAnalysis(
            period=period,
            changes=self._group(classified, period.mode),
            statistics=compute_statistics(commits),
            artifact_refs=tuple(rank_references(references)),
            commits=tuple(commits),
        )
        logger.debug(
            f"Analyzed {period.id}: {len(commits)} commits, "
            f"{analysis.change_count} changes, {len(references)} references"
        )
        return analysis

    def _call(self, func: Callable[[], T], name: str) -> T:
        return call_with_timeout(func, self.timeout, name, self.executor)

    def window(self, period: Period) -> CommitRange:
        """The period's bounds intersected with the requested history range."""
        since, until = period.start, period.end
        if self.commit_range.since is not None:
            since = max(since, to_utc(self.commit_range.since))
        if self.commit_range.until is not None:
            until = min(until, to_utc(self.commit_range.until))
        return CommitRange(since, until)

    def _fetch(self, period: Period) -> list[CommitRecord]:
        """Commits inside the clipped period, filtered again on the half-open bounds."""
        window = self.window(period)
        fetched = self._call(lambda: self.source.get_commits(window), "get_commits")
        seen: set[str] = set()
        commits = []
        for commit in sorted(fetched, key=lambda c: (to_utc(c.timestamp), c.hash)):
            if commit.hash in seen or not window.contains(to_utc(commit.timestamp)):
                continue
            seen.add(commit.hash)
            commits.append(commit)

        if len(commits) != period.commit_count:
            logger.debug(
                f"{period.id}: planned {period.commit_count} commits, fetched {len(commits)}"
            )
        return commits

    @staticmethod
    def _group(
        classified: Sequence[tuple[CommitRecord, Classification]], mode: PeriodMode
    ) -> dict[str, tuple[CategorizedChange, ...]]:
        """Group commits into changes per category.

        FULL mode keeps one change per distinct summary. SUMMARY mode collapses
        each category into a single change so the earliest, largest period is
        compressed rather than enumerated.
        """
        by_category: dict[str, list[tuple[CommitRecord, Classification]]] = defaultdict(list)
        for commit, verdict in classified:
            by_category[verdict.category].append((commit, verdict))

        grouped: dict[str, tuple[CategorizedChange, ...]] = {}
        for category in sorted(by_category):
            entries = by_category[category]
            if mode is PeriodMode.SUMMARY:
                grouped[category] = (
                    CategorizedChange(
                        category=category,
                        summary=f"{len(entries)} {category} commits",
                        commits=tuple(c.hash for c, _ in entries),
                        impact=impact_for(sum(c.stats.lines_changed for c, _ in entries)),
                    ),
                )
                continue

            by_summary: dict[str, list[CommitRecord]] = {}
            for commit, verdict in entries:
                by_summary.setdefault(verdict.summary, []).append(commit)
            grouped[category] = tuple(
                CategorizedChange(
                    category=category,
                    summary=summary,
                    commits=tuple(c.hash for c in members),
                    impact=impact_for(sum(c.stats.lines_changed for c in members)),
                )
                for summary, members in by_summary.items()
            )
        return grouped
