"""Merge period analyses into one conflict-resolved AggregatedResult."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ..logging_config import get_logger
from ..planning.models import Strategy
from ..sources.models import CommitRecord
from .analyzer import compute_statistics
from .models import (
    AggregatedResult,
    ExecutionSummary,
    GlobalStatistics,
    PeriodAnalysis,
    Reattribution,
)

logger = get_logger(__name__)


def _commit_hashes(analysis: PeriodAnalysis) -> set[str]:
    hashes = {c.hash for c in analysis.commits}
    for changes in analysis.changes.values():
        for change in changes:
            hashes.update(change.commits)
    return hashes


def strip_commits(analysis: PeriodAnalysis, duplicates: set[str]) -> PeriodAnalysis:
    """New analysis without ``duplicates``; the original is left untouched."""
    changes = {}
    for category, entries in analysis.changes.items():
        kept = []
        for change in entries:
            remaining = tuple(h for h in change.commits if h not in duplicates)
            if remaining:
                kept.append(replace(change, commits=remaining))
        if kept:
            changes[category] = tuple(kept)

    commits = tuple(c for c in analysis.commits if c.hash not in duplicates)
    return replace(
        analysis,
        changes=changes,
        commits=commits,
        statistics=compute_statistics(commits),
        artifact_refs=tuple(r for r in analysis.artifact_refs if r.commit not in duplicates),
        reattributed=tuple(sorted(duplicates)),
    )


def aggregate(
    analyses: Sequence[PeriodAnalysis],
    strategy: Strategy,
    fingerprint: str,
    summary: ExecutionSummary,
) -> AggregatedResult:
    """Merge analyses in period order.

    A commit present in several periods stays only in the earliest one; later
    occurrences are removed and recorded as re-attributions. Global statistics
    are accumulated over unique commits, so shared contributors, files and line
    counts are never counted twice.
    """
    ordered = sorted(analyses, key=lambda a: (a.period.start, a.period.end, a.period.id))

    owner: dict[str, str] = {}
    unique: dict[str, CommitRecord] = {}
    reattributions: list[Reattribution] = []
    merged: list[PeriodAnalysis] = []

    for analysis in ordered:
        hashes = _commit_hashes(analysis)
        duplicates = {h for h in hashes if h in owner}

        for commit_hash in sorted(duplicates):
            reattributions.append(
                Reattribution(
                    commit=commit_hash,
                    primary_period=owner[commit_hash],
                    duplicate_period=analysis.period.id,
                )
            )
        for commit_hash in hashes - duplicates:
            owner[commit_hash] = analysis.period.id

        if duplicates:
            logger.debug(f"{analysis.period.id}: {len(duplicates)} commits kept in earlier periods")
            analysis = strip_commits(analysis, duplicates)

        merged.append(analysis)
        for commit in analysis.commits:
            unique.setdefault(commit.hash, commit)

    category_counts: dict[str, int] = {}
    for analysis in merged:
        for category, changes in analysis.changes.items():
            count = len({h for change in changes for h in change.commits})
            category_counts[category] = category_counts.get(category, 0) + count

    commits = list(unique.values())
    statistics = GlobalStatistics(
        period_count=len(merged),
        total_commits=len(commits),
        contributors=frozenset(c.author for c in commits),
        files_changed=frozenset(f for c in commits for f in c.stats.files),
        insertions=sum(c.stats.insertions for c in commits),
        deletions=sum(c.stats.deletions for c in commits),
        category_counts=dict(sorted(category_counts.items())),
        artifact_references=sum(len(a.artifact_refs) for a in merged),
    )

    return AggregatedResult(
        strategy=strategy,
        fingerprint=fingerprint,
        periods=tuple(merged),
        statistics=statistics,
        summary=replace(summary, reattributions=tuple(reattributions)),
    )
