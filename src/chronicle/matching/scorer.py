"""Composite confidence: fuse cleared signals into one [0, 1] score.

The fusion is a pure function of the signal mapping. It only uses max, set
membership and addition of fixed bonuses, so any evaluation order of the same
signals gives the same result.
"""

from __future__ import annotations

from typing import Mapping, Optional

from ..config import MatchingConfig
from .models import BRANCH, EXPLICIT, LABEL, SEMANTIC, TEMPORAL

_INDEPENDENT_SIGNALS = frozenset({TEMPORAL, SEMANTIC, BRANCH, LABEL})


def clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def combine(
    scores: Mapping[str, float],
    config: MatchingConfig,
    is_pull_request: bool = False,
) -> Optional[float]:
    """Composite confidence for one commit/artifact pair.

    Args:
        scores: Cleared signals. TEMPORAL and SEMANTIC carry their scores;
            BRANCH, LABEL and EXPLICIT only need to be present.
        config: Bonus magnitudes
        is_pull_request: Branch bonus applies to PRs only

    Returns:
        Confidence in [0, 1], or None if no scoring signal cleared
    """
    if EXPLICIT in scores:
        return 1.0

    base_signals = [scores[s] for s in (TEMPORAL, SEMANTIC) if s in scores]
    if not base_signals:
        return None

    confidence = max(base_signals)
    if TEMPORAL in scores and SEMANTIC in scores:
        confidence += config.both_signals_bonus
    if is_pull_request and TEMPORAL in scores and BRANCH in scores:
        confidence += config.branch_bonus
    if len(_INDEPENDENT_SIGNALS.intersection(scores)) >= 3:
        confidence += config.multi_signal_bonus

    return clamp(confidence)
