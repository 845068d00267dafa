"""Data models exchanged with commit, artifact and text collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class DiffStats:
    files: tuple[str, ...] = ()
    insertions: int = 0
    deletions: int = 0

    @property
    def lines_changed(self) -> int:
        return self.insertions + self.deletions


@dataclass(frozen=True)
class CommitRecord:
    hash: str
    timestamp: datetime  # timezone-aware, UTC
    author: str
    message: str
    stats: DiffStats = field(default_factory=DiffStats)
    parents: tuple[str, ...] = ()
    branch: Optional[str] = None  # source branch when recoverable

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1 or self.subject.startswith("Merge ")


@dataclass(frozen=True)
class CommitRange:
    """Half-open commit window: since <= timestamp < until."""

    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def contains(self, timestamp: datetime) -> bool:
        if self.since is not None and timestamp < self.since:
            return False
        if self.until is not None and timestamp >= self.until:
            return False
        return True


@dataclass(frozen=True)
class Tag:
    name: str
    date: datetime
    commit: str


class ArtifactKind(Enum):
    ISSUE = "issue"
    PR = "pr"
    MILESTONE = "milestone"
    PROJECT = "project"


# Ranking order of kinds in match output
KIND_ORDER = (ArtifactKind.ISSUE, ArtifactKind.PR, ArtifactKind.MILESTONE, ArtifactKind.PROJECT)


@dataclass(frozen=True)
class Artifact:
    kind: ArtifactKind
    id: int
    title: str
    body: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    labels: tuple[str, ...] = ()
    branch: Optional[str] = None  # PR source branch

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.body}".strip()

    @property
    def timestamps(self) -> list[datetime]:
        return [
            ts
            for ts in (self.created_at, self.updated_at, self.closed_at, self.merged_at)
            if ts is not None
        ]


@dataclass(frozen=True)
class Classification:
    """Oracle verdict on a single commit."""

    category: str
    summary: str
