"""Data models for artifact matching."""

from __future__ import annotations

from dataclasses import dataclass

from ..sources.models import ArtifactKind

# Independent matching signals
EXPLICIT = "explicit"
TEMPORAL = "temporal"
SEMANTIC = "semantic"
BRANCH = "branch"
LABEL = "label"


@dataclass(frozen=True)
class ArtifactReference:
    kind: ArtifactKind
    id: int
    commit: str
    confidence: float  # always within [0, 1]
    signals: frozenset[str]

    @property
    def key(self) -> tuple[str, int]:
        return (self.kind.value, self.id)
