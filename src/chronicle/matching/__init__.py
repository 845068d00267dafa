"""Artifact matching: explicit, temporal and semantic signals fused into one confidence."""

from .matcher import ArtifactMatcher, rank_references
from .models import BRANCH, EXPLICIT, LABEL, SEMANTIC, TEMPORAL, ArtifactReference
from .scorer import combine
from .signals import day_distance, explicit_references, rescale_semantic, temporal_score

__all__ = [
    "ArtifactMatcher",
    "ArtifactReference",
    "BRANCH",
    "EXPLICIT",
    "LABEL",
    "SEMANTIC",
    "TEMPORAL",
    "combine",
    "day_distance",
    "explicit_references",
    "rank_references",
    "rescale_semantic",
    "temporal_score",
]
