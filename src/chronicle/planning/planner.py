"""Period planning: turn a commit timeline into ordered, non-overlapping periods.

Membership is always half-open (inclusive start, exclusive end), so each
commit lands in exactly one window. Windows are produced oldest first.
"""

from __future__ import annotations

import hashlib
from bisect import bisect_left
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import PurePosixPath
from typing import Optional, Sequence, Union

from ..config import PlanningConfig
from ..exceptions import InputError
from ..logging_config import get_logger
from ..sources.models import CommitRange, CommitRecord
from ..sources.protocols import CommitSource
from .calendar import advance, align_down, to_utc, window_id, window_label
from .models import (
    UNRELEASED_LABEL,
    Period,
    PeriodKind,
    PeriodMode,
    PeriodPlan,
    Release,
    RepositoryStats,
    Strategy,
)
from .releases import VersionBump, compute_releases, resolve_multiplicity
from .strategy import resolve_strategy

logger = get_logger(__name__)

DateInput = Union[str, date, datetime, None]

# Release windows close just after the tagged commit so it belongs to its release
_RELEASE_EPSILON = timedelta(seconds=1)


def parse_date(value: DateInput, name: str) -> Optional[datetime]:
    """Parse a range bound into an aware UTC datetime.

    Raises:
        InputError: If the value is not an ISO date or datetime
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        return to_utc(datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")))
    except ValueError:
        raise InputError(f"{name} is not an ISO date: {value!r}")


def validate_range(since: DateInput, until: DateInput) -> tuple[Optional[datetime], Optional[datetime]]:
    """Parse and check a date range before any other work happens.

    Raises:
        InputError: If a bound is malformed or since is after until
    """
    since_dt = parse_date(since, "since")
    until_dt = parse_date(until, "until")
    if since_dt is not None and until_dt is not None and since_dt > until_dt:
        raise InputError(
            "start date is after end date",
            since=since_dt.isoformat(),
            until=until_dt.isoformat(),
        )
    return since_dt, until_dt


def compute_periods(
    strategy: Strategy,
    commits: Sequence[CommitRecord],
    releases: Sequence[Release],
    config: PlanningConfig,
    now: Optional[datetime] = None,
) -> list[Period]:
    """Partition ``commits`` into periods for ``strategy``.

    Args:
        strategy: Resolved (non-auto) strategy
        commits: Commit timeline; sorted and de-duplicated here
        releases: Known releases, any order
        config: Planning section of the configuration
        now: Reference time for the "Unreleased" relabel (defaults to utcnow)

    Returns:
        Chronologically ordered, non-overlapping periods
    """
    now = to_utc(now) if now is not None else datetime.now(timezone.utc)
    timeline = _prepare_timeline(commits)
    if not timeline:
        return []

    if strategy.is_time_bound:
        periods = _time_windows(strategy, timeline, releases, config, now)
    else:
        periods = _release_windows(timeline, releases, config)

    return _finalize(periods, config)


def _prepare_timeline(commits: Sequence[CommitRecord]) -> list[CommitRecord]:
    """Sort by time and keep one record per hash (its earliest occurrence)."""
    seen: set[str] = set()
    timeline = []
    for commit in sorted(commits, key=lambda c: (to_utc(c.timestamp), c.hash)):
        if commit.hash in seen:
            continue
        seen.add(commit.hash)
        timeline.append(replace(commit, timestamp=to_utc(commit.timestamp)))
    return timeline


def _keep_window(members: Sequence[CommitRecord], config: PlanningConfig) -> bool:
    if not members:
        return not config.skip_empty
    if config.skip_merge_only and all(c.is_merge for c in members):
        return False
    return True


def _time_windows(
    strategy: Strategy,
    timeline: list[CommitRecord],
    releases: Sequence[Release],
    config: PlanningConfig,
    now: datetime,
) -> list[Period]:
    timestamps = [c.timestamp for c in timeline]
    boundary = align_down(timestamps[0], strategy, config.week_start_index)
    last = timestamps[-1]

    periods = []
    skipped = 0
    while boundary <= last:
        end = advance(boundary, strategy)
        lo = bisect_left(timestamps, boundary)
        hi = bisect_left(timestamps, end)
        members = timeline[lo:hi]

        if not _keep_window(members, config):
            skipped += 1
            boundary = end
            continue

        in_window = [r for r in releases if boundary <= to_utc(r.date) < end]
        winner, superseded = resolve_multiplicity(in_window)
        for release in superseded:
            logger.debug(f"{release.name} superseded by {winner.name} in {window_id(boundary, strategy)}")

        partial = end > now
        periods.append(
            Period(
                id=window_id(boundary, strategy),
                label=UNRELEASED_LABEL if partial else window_label(boundary, strategy),
                kind=PeriodKind.TIME_BOUND,
                start=boundary,
                end=end,
                start_commit=members[0].hash if members else "",
                end_commit=members[-1].hash if members else "",
                commit_count=len(members),
                tag=winner.name if winner else None,
                superseded_tags=tuple(r.name for r in superseded),
                is_partial=partial,
            )
        )
        boundary = end

    if skipped:
        logger.debug(f"Omitted {skipped} empty or merge-only {strategy.value} windows")

    return periods


def _release_windows(
    timeline: list[CommitRecord],
    releases: Sequence[Release],
    config: PlanningConfig,
) -> list[Period]:
    timestamps = [c.timestamp for c in timeline]
    commit_times = {c.hash: c.timestamp for c in timeline}

    # A window closes just after the tagged commit; the tag's own date only
    # stands in when that commit is outside the timeline. Releases sharing a
    # close boundary share a window.
    groups: dict[datetime, list[Release]] = {}
    for release in releases:
        closes = commit_times.get(release.commit, to_utc(release.date))
        groups.setdefault(closes + _RELEASE_EPSILON, []).append(release)

    periods = []
    cursor = timestamps[0]
    for end in sorted(groups):
        if end <= cursor:
            continue
        lo = bisect_left(timestamps, cursor)
        hi = bisect_left(timestamps, end)
        members = timeline[lo:hi]
        winner, superseded = resolve_multiplicity(groups[end])

        if _keep_window(members, config):
            periods.append(
                Period(
                    id=f"release-{winner.version}",
                    label=winner.name,
                    kind=PeriodKind.RELEASE,
                    start=cursor,
                    end=end,
                    start_commit=members[0].hash if members else "",
                    end_commit=members[-1].hash if members else "",
                    commit_count=len(members),
                    tag=winner.name,
                    superseded_tags=tuple(r.name for r in superseded),
                )
            )
        else:
            logger.debug(f"Omitted release window for {winner.name}")
        cursor = end

    lo = bisect_left(timestamps, cursor)
    remaining = timeline[lo:]
    if remaining and _keep_window(remaining, config):
        periods.append(
            Period(
                id="release-unreleased",
                label=UNRELEASED_LABEL,
                kind=PeriodKind.RELEASE,
                start=cursor,
                end=remaining[-1].timestamp + _RELEASE_EPSILON,
                start_commit=remaining[0].hash,
                end_commit=remaining[-1].hash,
                commit_count=len(remaining),
                is_partial=True,
            )
        )

    return periods


def _finalize(periods: list[Period], config: PlanningConfig) -> list[Period]:
    """Flag the earliest period and decide whether it is summarized."""
    if not periods:
        return periods
    first = periods[0]
    mode = PeriodMode.SUMMARY if first.commit_count > config.summary_threshold else PeriodMode.FULL
    periods[0] = replace(first, is_first=True, mode=mode)
    return periods


def period_revision(period: Period) -> str:
    """Content address of a period: every field except its id.

    Lets one period id (e.g. an open "Unreleased" week) map to a new cache
    entry whenever its commits, tag or flags change.
    """
    payload = "|".join(
        str(v)
        for v in (
            period.start.isoformat(),
            period.end.isoformat(),
            period.start_commit,
            period.end_commit,
            period.commit_count,
            period.tag,
            ",".join(period.superseded_tags),
            period.is_first,
            period.is_partial,
            period.mode.value,
            period.label,
        )
    )
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


class PeriodPlanner:
    """Plan periods for one repository."""

    def __init__(
        self,
        commit_source: CommitSource,
        config: PlanningConfig,
        now: Optional[datetime] = None,
    ):
        self.source = commit_source
        self.config = config
        self.now = now

    def plan(self, since: DateInput = None, until: DateInput = None) -> PeriodPlan:
        since_dt, until_dt = validate_range(since, until)

        commits = _prepare_timeline(self.source.get_commits(CommitRange(since_dt, until_dt)))
        releases = compute_releases(self.source.get_tags(), self._version_bumps(commits))

        stats = None
        if commits:
            stats = RepositoryStats(
                commit_count=len(commits),
                first_commit=commits[0].timestamp,
                last_commit=commits[-1].timestamp,
            )

        strategy, detected, conflicts = resolve_strategy(stats, releases, self.config)
        periods = compute_periods(strategy, commits, releases, self.config, now=self.now)

        logger.info(
            f"Planned {len(periods)} {strategy.value} periods "
            f"from {len(commits)} commits and {len(releases)} releases"
        )
        return PeriodPlan(
            strategy=strategy,
            periods=tuple(periods),
            releases=tuple(releases),
            warnings=tuple(str(c) for c in conflicts),
            detected_strategy=detected,
        )

    def _version_bumps(self, commits: Sequence[CommitRecord]) -> list[VersionBump]:
        watched = set(self.config.version_files)
        if not watched:
            return []

        bumps = []
        for commit in commits:
            touched = [f for f in commit.stats.files if PurePosixPath(f).name in watched]
            if not touched:
                continue
            version = self.source.get_version_file_diff(commit.hash, touched)
            if version:
                bumps.append(VersionBump(version=version, date=commit.timestamp, commit=commit.hash))
        return bumps
