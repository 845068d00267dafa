"""Shared test fixtures for Chronicle: deterministic stub collaborators."""

import os
import threading

import pytest

from chronicle.sources.models import (
    Artifact,
    ArtifactKind,
    Classification,
    CommitRange,
    CommitRecord,
    DiffStats,
    Tag,
)


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user and project config files and CHRONICLE_* variables out of tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("CHRONICLE_"):
            monkeypatch.delenv(key)


class StubCommitSource:
    """In-memory Commit Source honouring the half-open range contract."""

    def __init__(self, commits=(), tags=(), versions=None, fail_times=0, error=None):
        self.commits = list(commits)
        self.tags = list(tags)
        self.versions = dict(versions or {})
        self.fail_times = fail_times
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()

    def get_commits(self, commit_range: CommitRange):
        with self._lock:
            self.calls += 1
            if self.fail_times > 0:
                self.fail_times -= 1
                raise self.error
        return sorted(
            (c for c in self.commits if commit_range.contains(c.timestamp)),
            key=lambda c: c.timestamp,
        )

    def get_tags(self):
        return list(self.tags)

    def get_version_file_diff(self, commit, files):
        return self.versions.get(commit)


class StubOracle:
    """Classifies by the conventional prefix; similarity from a lookup table."""

    def __init__(self, similarities=None, default_similarity=0.0):
        self.similarities = dict(similarities or {})
        self.default_similarity = default_similarity
        self.similarity_calls = 0

    def classify(self, commit_text):
        subject = commit_text.split("\n", 1)[0]
        if ":" in subject:
            prefix, rest = subject.split(":", 1)
            category = {"feat": "features", "fix": "fixes"}.get(prefix.strip(), "other")
            return Classification(category=category, summary=rest.strip())
        return Classification(category="other", summary=subject)

    def similarity(self, text_a, text_b):
        self.similarity_calls += 1
        for (needle_a, needle_b), score in self.similarities.items():
            if needle_a in text_a and needle_b in text_b:
                return score
        return self.default_similarity


class StubArtifactSource:
    def __init__(self, artifacts=None, error=None):
        self.artifacts = dict(artifacts or {})
        self.error = error
        self.calls = []

    def list_artifacts(self, kind, repo):
        self.calls.append((kind, repo))
        if self.error is not None:
            raise self.error
        return list(self.artifacts.get(kind, []))


@pytest.fixture
def make_commit():
    """Factory for CommitRecord objects with sensible defaults."""

    def _make(
        sha,
        when,
        message="feat: change",
        author="alice@example.com",
        files=("src/app.py",),
        insertions=10,
        deletions=2,
        parents=("p",),
        branch=None,
    ):
        return CommitRecord(
            hash=sha,
            timestamp=when,
            author=author,
            message=message,
            stats=DiffStats(files=tuple(files), insertions=insertions, deletions=deletions),
            parents=tuple(parents),
            branch=branch,
        )

    return _make


@pytest.fixture
def make_tag():
    def _make(name, when, commit="c"):
        return Tag(name=name, date=when, commit=commit)

    return _make


@pytest.fixture
def make_artifact():
    def _make(kind=ArtifactKind.ISSUE, id=1, title="", body="", created_at=None, **kwargs):
        return Artifact(kind=kind, id=id, title=title, body=body, created_at=created_at, **kwargs)

    return _make


@pytest.fixture
def stub_source():
    return StubCommitSource


@pytest.fixture
def stub_oracle():
    return StubOracle


@pytest.fixture
def stub_artifacts():
    return StubArtifactSource
