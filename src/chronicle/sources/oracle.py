"""Deterministic default text oracle.

Classification uses conventional-commit prefixes with keyword fallbacks;
similarity is the cosine of bag-of-words vectors. Good enough to run the
pipeline offline; swap in a model-backed oracle for real semantic matching.
"""

from __future__ import annotations

import re
from collections import Counter

import numpy as np

from .models import Classification

# Conventional-commit type -> category
PREFIX_CATEGORIES = {
    "feat": "features",
    "feature": "features",
    "fix": "fixes",
    "bugfix": "fixes",
    "hotfix": "fixes",
    "docs": "documentation",
    "doc": "documentation",
    "refactor": "refactoring",
    "perf": "performance",
    "test": "tests",
    "tests": "tests",
    "build": "maintenance",
    "ci": "maintenance",
    "chore": "maintenance",
    "style": "maintenance",
    "deps": "dependencies",
    "revert": "reverts",
    "security": "security",
}

# Checked in order; first hit wins
KEYWORD_CATEGORIES = (
    ("security", frozenset({"security", "vulnerability", "cve", "xss", "injection"})),
    ("fixes", frozenset({"fix", "fixes", "fixed", "bug", "patch", "repair", "crash", "issue"})),
    ("features", frozenset({"add", "adds", "added", "implement", "introduce", "support", "new"})),
    ("performance", frozenset({"perf", "performance", "speed", "faster", "optimize", "cache"})),
    ("refactoring", frozenset({"refactor", "cleanup", "reorganize", "restructure", "rename"})),
    ("documentation", frozenset({"docs", "doc", "readme", "documentation", "docstring"})),
    ("tests", frozenset({"test", "tests", "testing", "coverage", "pytest"})),
    ("dependencies", frozenset({"bump", "upgrade", "dependency", "dependencies", "deps"})),
)

STOPWORDS = frozenset(
    {
        "the", "and", "for", "with", "this", "that", "from", "into", "when", "are",
        "was", "were", "has", "have", "not", "but", "use", "used", "using", "its",
        "all", "can", "should", "will", "now", "also", "via", "per", "out",
    }
)

_CONVENTIONAL_RE = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\([^)]*\))?(?P<breaking>!)?:\s*(?P<rest>.+)$")
_TOKEN_RE = re.compile(r"[a-z][a-z0-9_]+")


def tokenize(text: str) -> list[str]:
    return [t for t in _TOKEN_RE.findall(text.lower()) if len(t) > 2 and t not in STOPWORDS]


class HeuristicOracle:
    """Keyword classifier and bag-of-words cosine similarity."""

    def classify(self, commit_text: str) -> Classification:
        subject = commit_text.strip().split("\n", 1)[0].strip()

        if subject.startswith("Merge "):
            return Classification(category="merges", summary=subject)

        match = _CONVENTIONAL_RE.match(subject)
        if match:
            category = PREFIX_CATEGORIES.get(match.group("type").lower())
            if category is not None:
                if match.group("breaking"):
                    category = "breaking"
                return Classification(category=category, summary=_sentence(match.group("rest")))

        words = set(tokenize(subject)) | set(subject.lower().split())
        for category, keywords in KEYWORD_CATEGORIES:
            if words & keywords:
                return Classification(category=category, summary=_sentence(subject))

        return Classification(category="other", summary=_sentence(subject))

    def similarity(self, text_a: str, text_b: str) -> float:
        counts_a = Counter(tokenize(text_a))
        counts_b = Counter(tokenize(text_b))
        if not counts_a or not counts_b:
            return 0.0

        vocabulary = sorted(set(counts_a) | set(counts_b))
        vec_a = np.array([counts_a[t] for t in vocabulary], dtype=float)
        vec_b = np.array([counts_b[t] for t in vocabulary], dtype=float)

        denom = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
        if denom == 0:
            return 0.0
        return float(np.clip(np.dot(vec_a, vec_b) / denom, 0.0, 1.0))


def _sentence(text: str) -> str:
    text = text.strip().rstrip(".")
    return text[:1].upper() + text[1:] if text else text
