"""Protocol classes for the collaborators the engine consumes.

Anything satisfying these shapes can be injected: the git and GitHub adapters
in this package, or deterministic stubs in tests.
"""

from typing import Optional, Protocol, Sequence

from .models import Artifact, ArtifactKind, Classification, CommitRange, CommitRecord, Tag


class CommitSource(Protocol):
    """Raw commit and tag retrieval."""

    def get_commits(self, commit_range: CommitRange) -> list[CommitRecord]:
        """Commits inside the range, oldest first."""
        ...

    def get_tags(self) -> list[Tag]: ...

    def get_version_file_diff(self, commit: str, files: Sequence[str]) -> Optional[str]:
        """Version string introduced by ``commit`` in any of ``files``, if any."""
        ...


class ArtifactSource(Protocol):
    """Externally tracked items (issues, PRs, milestones, projects)."""

    def list_artifacts(self, kind: ArtifactKind, repo: str) -> list[Artifact]: ...


class TextOracle(Protocol):
    """Opaque natural-language scorer.

    Chronicle never inspects how these answers are produced.
    """

    def classify(self, commit_text: str) -> Classification: ...

    def similarity(self, text_a: str, text_b: str) -> float:
        """Similarity in [0, 1]."""
        ...
