"""Collaborator interfaces and their default adapters."""

from .artifacts import ArtifactCatalog, JsonArtifactSource
from .git_source import GitCommitSource
from .github import GitHubArtifactSource
from .models import (
    Artifact,
    ArtifactKind,
    Classification,
    CommitRange,
    CommitRecord,
    DiffStats,
    Tag,
)
from .oracle import HeuristicOracle
from .protocols import ArtifactSource, CommitSource, TextOracle

__all__ = [
    "Artifact",
    "ArtifactCatalog",
    "ArtifactKind",
    "ArtifactSource",
    "Classification",
    "CommitRange",
    "CommitRecord",
    "CommitSource",
    "DiffStats",
    "GitCommitSource",
    "GitHubArtifactSource",
    "HeuristicOracle",
    "JsonArtifactSource",
    "Tag",
    "TextOracle",
]
