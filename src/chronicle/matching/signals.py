"""Individual matching signals: explicit mentions, temporal distance, semantic score."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Sequence

from ..sources.models import ArtifactKind

# "#12", "fixes #12", "closes: #12", "(#12)", "GH-12"
_ISSUE_REF_RE = re.compile(
    r"(?:(?<![\w/])#|\bGH-)(\d+)\b",
    re.IGNORECASE,
)
_KINDED_REF_RE = re.compile(r"\b(milestone|project)\s*#?(\d+)\b", re.IGNORECASE)

# (upper bound in days, score); beyond the last bound only the window applies
TEMPORAL_STEPS: tuple[tuple[int, float], ...] = ((0, 1.0), (3, 0.90), (7, 0.80), (14, 0.60))
TEMPORAL_WINDOW_SCORE = 0.40


def explicit_references(message: str) -> set[tuple[ArtifactKind, int]]:
    """Artifact ids mentioned in a commit message.

    Bare ``#N`` and ``GH-N`` mentions name an issue or a pull request (they
    share one number space); ``milestone N`` / ``project #N`` name those kinds.
    """
    refs: set[tuple[ArtifactKind, int]] = set()
    kinded_spans = []
    for match in _KINDED_REF_RE.finditer(message):
        kind = ArtifactKind.MILESTONE if match.group(1).lower() == "milestone" else ArtifactKind.PROJECT
        refs.add((kind, int(match.group(2))))
        kinded_spans.append(match.span())

    for match in _ISSUE_REF_RE.finditer(message):
        if any(start <= match.start() < end for start, end in kinded_spans):
            continue
        number = int(match.group(1))
        refs.add((ArtifactKind.ISSUE, number))
        refs.add((ArtifactKind.PR, number))
    return refs


def day_distance(commit_time: datetime, artifact_times: Sequence[datetime]) -> Optional[int]:
    """Smallest whole-day distance between the commit and any artifact timestamp."""
    if not artifact_times:
        return None
    return min(int(abs((commit_time - ts).total_seconds()) // 86400) for ts in artifact_times)


def temporal_score(distance_days: Optional[int], window_days: int) -> Optional[float]:
    """Map a day distance through the decreasing step function.

    Returns None when the artifact falls outside the window, which removes it
    from candidacy entirely.
    """
    if distance_days is None or distance_days > window_days:
        return None
    for bound, score in TEMPORAL_STEPS:
        if distance_days <= bound:
            return score
    return TEMPORAL_WINDOW_SCORE


def rescale_semantic(raw: float, threshold: float = 0.40, ceiling: float = 0.95) -> Optional[float]:
    """Rescale a raw oracle score from [threshold, 1] into [threshold, ceiling].

    Scores under the threshold are discarded (None).
    """
    raw = min(max(raw, 0.0), 1.0)
    if raw < threshold:
        return None
    if threshold >= 1.0:
        return ceiling
    return threshold + (raw - threshold) * (ceiling - threshold) / (1.0 - threshold)
