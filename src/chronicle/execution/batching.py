"""Split periods into concurrency-bounded batches."""

from __future__ import annotations

import math
from typing import Sequence

from ..config import MAX_CONCURRENCY_CAP
from ..planning.models import Period


def plan_batches(periods: Sequence[Period], max_concurrency: int = 3) -> list[list[int]]:
    """Assign periods to batches of at most ``max_concurrency`` jobs.

    Longest-processing-time flavour: periods are sorted by descending commit
    count (ties keep chronological order) and dealt round-robin into
    ceil(n / max_concurrency) batches, which spreads the heavy periods without
    solving the optimal schedule.

    Returns:
        Batches of indices into ``periods``; each batch lists indices in
        ascending (chronological) order
    """
    if not periods:
        return []

    width = min(max(1, max_concurrency), MAX_CONCURRENCY_CAP)
    batch_count = math.ceil(len(periods) / width)

    by_weight = sorted(range(len(periods)), key=lambda i: (-periods[i].commit_count, i))
    batches: list[list[int]] = [[] for _ in range(batch_count)]
    for position, index in enumerate(by_weight):
        batches[position % batch_count].append(index)

    return [sorted(batch) for batch in batches]
