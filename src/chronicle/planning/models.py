"""Data models for period planning."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Strategy(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RELEASE = "release"

    @property
    def is_time_bound(self) -> bool:
        return self is not Strategy.RELEASE


class PeriodKind(Enum):
    TIME_BOUND = "time-bound"
    RELEASE = "release"


class PeriodMode(Enum):
    FULL = "full"
    SUMMARY = "summary"  # downstream should compress instead of enumerate


UNRELEASED_LABEL = "Unreleased"


@dataclass(frozen=True)
class Release:
    version: str  # normalized, no leading "v"
    name: str  # tag name or version-file value as written
    date: datetime
    commit: str
    source: str  # "tag" | "file"
    superseded: bool = False


@dataclass(frozen=True)
class RepositoryStats:
    commit_count: int
    first_commit: datetime
    last_commit: datetime

    @property
    def age_days(self) -> float:
        return (self.last_commit - self.first_commit).total_seconds() / 86400

    @property
    def commits_per_week(self) -> float:
        weeks = max(self.age_days / 7, 1.0)
        return self.commit_count / weeks


@dataclass(frozen=True)
class Period:
    """A contiguous half-open window [start, end) of the history."""

    id: str
    label: str
    kind: PeriodKind
    start: datetime
    end: datetime
    start_commit: str
    end_commit: str
    commit_count: int
    tag: Optional[str] = None
    superseded_tags: tuple[str, ...] = ()
    is_first: bool = False
    is_partial: bool = False
    mode: PeriodMode = PeriodMode.FULL

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end


@dataclass(frozen=True)
class PeriodPlan:
    strategy: Strategy
    periods: tuple[Period, ...]
    releases: tuple[Release, ...]
    warnings: tuple[str, ...] = ()
    detected_strategy: Optional[Strategy] = None
