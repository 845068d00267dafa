"""ArtifactMatcher: link commits to issues, PRs, milestones and projects.

Stages, per candidate artifact:
    1. Explicit reference (#N, fixes #N, GH-N, milestone N): confidence 1.0, done.
    2. Temporal correlation: nearest artifact timestamp through a step function.
       Artifacts outside the window stop here, before any oracle call.
    3. Semantic similarity from the text oracle, rescaled.
    4. Composite combination with bonuses (see scorer.combine).
    5. Confidence gate and per-kind ranking.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import MatchingConfig
from ..logging_config import get_logger
from ..sources.models import KIND_ORDER, Artifact, ArtifactKind, CommitRecord
from ..sources.protocols import TextOracle
from .models import BRANCH, EXPLICIT, LABEL, SEMANTIC, TEMPORAL, ArtifactReference
from .scorer import combine
from .signals import day_distance, explicit_references, rescale_semantic, temporal_score

logger = get_logger(__name__)

# Commit category -> artifact labels that corroborate it
CATEGORY_LABELS = {
    "fixes": frozenset({"bug", "fix", "bugfix", "defect", "regression"}),
    "features": frozenset({"feature", "enhancement", "feature request"}),
    "documentation": frozenset({"docs", "documentation"}),
    "performance": frozenset({"performance", "perf"}),
    "security": frozenset({"security", "vulnerability"}),
    "refactoring": frozenset({"refactor", "refactoring", "tech debt", "cleanup"}),
    "tests": frozenset({"test", "tests", "testing"}),
    "dependencies": frozenset({"dependencies", "deps"}),
    "breaking": frozenset({"breaking", "breaking change"}),
}


def rank_references(references: Iterable[ArtifactReference]) -> list[ArtifactReference]:
    """Group by kind, strongest first; ids break ties deterministically."""
    return sorted(
        references,
        key=lambda r: (KIND_ORDER.index(r.kind), -r.confidence, r.id),
    )


class ArtifactMatcher:
    """Score one commit against a list of candidate artifacts.

    The matcher never fetches artifacts: callers pass the current list for
    each kind (see ArtifactCatalog), so fetch and cache policy live elsewhere.
    """

    def __init__(self, oracle: TextOracle, config: MatchingConfig):
        self.oracle = oracle
        self.config = config

    def match(
        self,
        commit: CommitRecord,
        candidates: Iterable[Artifact],
        category: Optional[str] = None,
    ) -> list[ArtifactReference]:
        cfg = self.config
        mentioned = explicit_references(commit.message) if cfg.enable_explicit else set()

        references = []
        for artifact in candidates:
            if (artifact.kind, artifact.id) in mentioned:
                references.append(
                    ArtifactReference(
                        kind=artifact.kind,
                        id=artifact.id,
                        commit=commit.hash,
                        confidence=1.0,
                        signals=frozenset({EXPLICIT}),
                    )
                )
                continue

            scores = self._score(commit, artifact, category)
            if scores is None:
                continue

            confidence = combine(scores, cfg, is_pull_request=artifact.kind is ArtifactKind.PR)
            if confidence is None or confidence < cfg.confidence_threshold:
                continue

            references.append(
                ArtifactReference(
                    kind=artifact.kind,
                    id=artifact.id,
                    commit=commit.hash,
                    confidence=confidence,
                    signals=frozenset(scores),
                )
            )

        return rank_references(references)

    def _score(
        self, commit: CommitRecord, artifact: Artifact, category: Optional[str]
    ) -> Optional[dict[str, float]]:
        """Cleared signals for a non-explicit candidate, or None if it drops out."""
        cfg = self.config
        scores: dict[str, float] = {}

        if cfg.enable_temporal:
            distance = day_distance(commit.timestamp, artifact.timestamps)
            temporal = temporal_score(distance, cfg.time_window_days)
            if temporal is None:
                return None
            scores[TEMPORAL] = temporal

        if cfg.enable_semantic:
            raw = self.oracle.similarity(commit.message, artifact.text)
            if raw < cfg.semantic_veto_floor:
                logger.debug(
                    f"{commit.hash[:8]} vs {artifact.kind.value} {artifact.id}: "
                    f"semantic {raw:.2f} below veto floor"
                )
                return None
            semantic = rescale_semantic(raw, cfg.semantic_threshold, cfg.semantic_ceiling)
            if semantic is not None:
                scores[SEMANTIC] = semantic

        if artifact.kind is ArtifactKind.PR and artifact.branch and commit.branch == artifact.branch:
            scores[BRANCH] = 1.0

        if cfg.enable_labels and category and artifact.labels:
            wanted = CATEGORY_LABELS.get(category, frozenset({category}))
            if wanted & {label.lower() for label in artifact.labels}:
                scores[LABEL] = 1.0

        return scores
