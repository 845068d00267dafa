"""Tests for sources/oracle.py - the heuristic text oracle."""

import pytest

from chronicle.sources.oracle import HeuristicOracle, tokenize


@pytest.fixture
def oracle():
    return HeuristicOracle()


class TestClassify:
    @pytest.mark.parametrize(
        "message, category",
        [
            ("feat: add search", "features"),
            ("fix(parser): handle empty input", "fixes"),
            ("docs: update readme", "documentation"),
            ("chore: bump tooling", "maintenance"),
            ("perf: faster lookup", "performance"),
        ],
    )
    def test_conventional_prefixes(self, oracle, message, category):
        assert oracle.classify(message).category == category

    def test_breaking_change(self, oracle):
        assert oracle.classify("feat!: drop python 3.8").category == "breaking"

    def test_summary_is_capitalised_body(self, oracle):
        assert oracle.classify("feat(api): add pagination.").summary == "Add pagination"

    def test_merge_subject(self, oracle):
        result = oracle.classify("Merge pull request #4 from octo/topic\n\nDetails")
        assert result.category == "merges"

    def test_keyword_fallback(self, oracle):
        assert oracle.classify("Repair crash on startup").category == "fixes"
        assert oracle.classify("Add export button").category == "features"

    def test_unknown_prefix_uses_keywords(self, oracle):
        assert oracle.classify("wip: fixed the bug").category == "fixes"

    def test_other(self, oracle):
        assert oracle.classify("Tweak colours").category == "other"

    def test_only_subject_is_considered(self, oracle):
        assert oracle.classify("Tweak colours\n\nfix bug in the same go").category == "other"


class TestSimilarity:
    def test_identical_text(self, oracle):
        assert oracle.similarity("login page crash", "login page crash") == pytest.approx(1.0)

    def test_disjoint_text(self, oracle):
        assert oracle.similarity("login crash", "database migration") == 0.0

    def test_partial_overlap(self, oracle):
        score = oracle.similarity("fix login crash", "login page crash on submit")
        assert 0.0 < score < 1.0

    def test_empty_text(self, oracle):
        assert oracle.similarity("", "anything here") == 0.0

    def test_symmetric(self, oracle):
        a, b = "search results pagination", "pagination for search"
        assert oracle.similarity(a, b) == pytest.approx(oracle.similarity(b, a))


class TestTokenize:
    def test_drops_stopwords_and_short_tokens(self):
        assert tokenize("Fix the UI for an edge case") == ["fix", "edge", "case"]
