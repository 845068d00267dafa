"""Tests for sources/artifacts.py - JSON source and the cache-first catalog."""

import json
from datetime import datetime, timezone

import pytest

from chronicle.cache import ChronicleCache
from chronicle.exceptions import ConfigurationError
from chronicle.sources.artifacts import ArtifactCatalog, JsonArtifactSource, parse_timestamp
from chronicle.sources.models import ArtifactKind


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2024-01-02T10:00:00Z") == datetime(2024, 1, 2, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-02T10:00:00").tzinfo is not None

    def test_offset_is_normalised(self):
        assert parse_timestamp("2024-01-02T12:00:00+02:00") == datetime(2024, 1, 2, 10, tzinfo=timezone.utc)

    def test_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None


class TestJsonArtifactSource:
    def test_reads_kinds(self, tmp_path):
        path = tmp_path / "artifacts.json"
        path.write_text(
            json.dumps(
                {
                    "issue": [{"id": 12, "title": "Crash", "labels": ["bug"], "created_at": "2024-01-02T10:00:00Z"}],
                    "pr": [{"id": 15, "title": "Fix", "branch": "fix-crash"}],
                }
            )
        )
        source = JsonArtifactSource(path)

        (issue,) = source.list_artifacts(ArtifactKind.ISSUE, "any")
        (pr,) = source.list_artifacts(ArtifactKind.PR, "any")

        assert (issue.id, issue.title, issue.labels) == (12, "Crash", ("bug",))
        assert pr.branch == "fix-crash"
        assert source.list_artifacts(ArtifactKind.MILESTONE, "any") == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            JsonArtifactSource(tmp_path / "missing.json").list_artifacts(ArtifactKind.ISSUE, "r")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            JsonArtifactSource(path).list_artifacts(ArtifactKind.ISSUE, "r")

    def test_record_without_id(self, tmp_path):
        path = tmp_path / "artifacts.json"
        path.write_text(json.dumps({"issue": [{"title": "no id"}]}))
        with pytest.raises(ConfigurationError, match="issue record"):
            JsonArtifactSource(path).list_artifacts(ArtifactKind.ISSUE, "r")

    def test_record_with_bad_timestamp(self, tmp_path):
        path = tmp_path / "artifacts.json"
        path.write_text(json.dumps({"pr": [{"id": 3, "merged_at": "yesterday"}]}))
        with pytest.raises(ConfigurationError, match="pr record"):
            JsonArtifactSource(path).list_artifacts(ArtifactKind.PR, "r")

    def test_top_level_must_be_an_object(self, tmp_path):
        path = tmp_path / "artifacts.json"
        path.write_text(json.dumps([{"id": 1}]))
        with pytest.raises(ConfigurationError):
            JsonArtifactSource(path).list_artifacts(ArtifactKind.ISSUE, "r")


class TestArtifactCatalog:
    def test_fetches_without_cache(self, stub_artifacts, make_artifact):
        source = stub_artifacts({ArtifactKind.ISSUE: [make_artifact(id=1)]})
        catalog = ArtifactCatalog(source, "octo/repo")
        assert [a.id for a in catalog.current(ArtifactKind.ISSUE)] == [1]
        assert source.calls == [(ArtifactKind.ISSUE, "octo/repo")]

    def test_cache_first(self, tmp_path, stub_artifacts, make_artifact):
        source = stub_artifacts({ArtifactKind.ISSUE: [make_artifact(id=1)]})
        with ChronicleCache(str(tmp_path / "cache")) as cache:
            catalog = ArtifactCatalog(source, "octo/repo", cache)
            catalog.current(ArtifactKind.ISSUE)
            again = catalog.current(ArtifactKind.ISSUE)

        assert [a.id for a in again] == [1]
        assert len(source.calls) == 1

    def test_kinds_are_cached_independently(self, tmp_path, stub_artifacts, make_artifact):
        source = stub_artifacts(
            {
                ArtifactKind.ISSUE: [make_artifact(id=1)],
                ArtifactKind.PR: [make_artifact(kind=ArtifactKind.PR, id=2)],
            }
        )
        with ChronicleCache(str(tmp_path / "cache")) as cache:
            catalog = ArtifactCatalog(source, "octo/repo", cache)
            catalog.current(ArtifactKind.ISSUE)
            cache.cache.delete(cache.artifact_key("octo/repo", "issue"))
            catalog.current(ArtifactKind.PR)
            catalog.current(ArtifactKind.PR)
            catalog.current(ArtifactKind.ISSUE)

        assert [kind for kind, _ in source.calls] == [ArtifactKind.ISSUE, ArtifactKind.PR, ArtifactKind.ISSUE]

    def test_errors_propagate(self, stub_artifacts):
        catalog = ArtifactCatalog(stub_artifacts(error=ConfigurationError("gone")), "r")
        with pytest.raises(ConfigurationError):
            catalog.current(ArtifactKind.ISSUE)
