"""Serialization of the aggregated result for the document assembler.

Transformation rules:
- Timestamps: ISO-8601 strings in UTC
- Sets: sorted lists
- Enums: their string values
- Confidences: rounded to 4 places
"""

from __future__ import annotations

from typing import Any

from .execution.models import AggregatedResult, PeriodAnalysis
from .planning.models import Period


def period_to_dict(period: Period) -> dict[str, Any]:
    return {
        "id": period.id,
        "label": period.label,
        "kind": period.kind.value,
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
        "start_commit": period.start_commit,
        "end_commit": period.end_commit,
        "commit_count": period.commit_count,
        "tag": period.tag,
        "superseded_tags": list(period.superseded_tags),
        "is_first": period.is_first,
        "is_partial": period.is_partial,
        "mode": period.mode.value,
    }


def analysis_to_dict(analysis: PeriodAnalysis) -> dict[str, Any]:
    stats = analysis.statistics
    return {
        "period": period_to_dict(analysis.period),
        "changes": {
            category: [
                {
                    "summary": change.summary,
                    "commits": list(change.commits),
                    "impact": change.impact.value,
                }
                for change in changes
            ]
            for category, changes in analysis.changes.items()
        },
        "statistics": {
            "commit_count": stats.commit_count,
            "contributors": sorted(stats.contributors),
            "files_changed": len(stats.files_changed),
            "insertions": stats.insertions,
            "deletions": stats.deletions,
        },
        "artifact_refs": [
            {
                "kind": ref.kind.value,
                "id": ref.id,
                "commit": ref.commit,
                "confidence": round(ref.confidence, 4),
                "signals": sorted(ref.signals),
            }
            for ref in analysis.artifact_refs
        ],
        "cache": analysis.cache.value,
        "is_placeholder": analysis.is_placeholder,
        "error": analysis.error,
        "reattributed": list(analysis.reattributed),
    }


def result_to_dict(result: AggregatedResult) -> dict[str, Any]:
    """JSON-ready form of an AggregatedResult."""
    stats = result.statistics
    summary = result.summary
    return {
        "strategy": result.strategy.value,
        "fingerprint": result.fingerprint,
        "periods": [analysis_to_dict(a) for a in result.periods],
        "statistics": {
            "period_count": stats.period_count,
            "total_commits": stats.total_commits,
            "contributors": sorted(stats.contributors),
            "files_changed": sorted(stats.files_changed),
            "insertions": stats.insertions,
            "deletions": stats.deletions,
            "category_counts": dict(stats.category_counts),
            "artifact_references": stats.artifact_references,
        },
        "execution": {
            "retries": summary.retries,
            "placeholders": summary.placeholders,
            "cache_hits": summary.cache_hits,
            "cache_misses": summary.cache_misses,
            "batches": summary.batches,
            "data_gaps": list(summary.data_gaps),
            "warnings": list(summary.warnings),
            "reattributions": [
                {
                    "commit": r.commit,
                    "primary_period": r.primary_period,
                    "duplicate_period": r.duplicate_period,
                }
                for r in summary.reattributions
            ],
            "cancelled": summary.cancelled,
        },
    }
