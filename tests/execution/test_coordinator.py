"""Tests for execution/coordinator.py - scheduling, retries, cache and gaps."""

import json
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from chronicle.cache import ChronicleCache
from chronicle.config import ChronicleConfig, ExecutionConfig, MatchingConfig
from chronicle.exceptions import ConfigurationError, InputError, TransientError
from chronicle.execution.coordinator import ExecutionCoordinator
from chronicle.execution.models import CacheStatus
from chronicle.planning.models import Strategy
from chronicle.planning.planner import compute_periods
from chronicle.sources.artifacts import ArtifactCatalog, JsonArtifactSource
from chronicle.sources.models import ArtifactKind

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def no_sleep(_):
    pass


def make_config(max_concurrency=3, max_retries=2, **matching):
    return ChronicleConfig(
        matching=MatchingConfig(**matching),
        execution=ExecutionConfig(max_concurrency=max_concurrency, max_retries=max_retries),
    )


@pytest.fixture
def daily(make_commit):
    """One commit per day, two per day on even days."""

    def _build(days):
        commits = []
        for day in range(days):
            when = START + timedelta(days=day, hours=9)
            commits.append(make_commit(f"d{day}a", when, message=f"feat: change {day}", author=f"dev{day % 3}"))
            if day % 2 == 0:
                commits.append(make_commit(f"d{day}b", when + timedelta(hours=1), message=f"fix: bug {day}"))
        periods = compute_periods(Strategy.DAILY, commits, [], make_config().planning, now=START + timedelta(days=365))
        return commits, periods

    return _build


class TestScheduling:
    def test_output_is_chronological_when_later_job_finishes_first(self, daily, stub_source, stub_oracle):
        commits, periods = daily(3)
        finished = []
        late_done = threading.Event()

        class Gated(stub_source):
            def get_commits(self, commit_range):
                if commit_range.since == periods[0].start:
                    assert late_done.wait(5)
                result = super().get_commits(commit_range)
                finished.append(commit_range.since)
                if commit_range.since == periods[2].start:
                    late_done.set()
                return result

        coordinator = ExecutionCoordinator(Gated(commits), stub_oracle(), make_config(), sleep=no_sleep)
        result = coordinator.run(periods, Strategy.DAILY)

        assert finished.index(periods[2].start) < finished.index(periods[0].start)
        assert [a.period.id for a in result.periods] == [p.id for p in periods]
        assert result.summary.batches == 1

    def test_batches_are_counted(self, daily, stub_source, stub_oracle):
        commits, periods = daily(11)
        coordinator = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config(), sleep=no_sleep)
        result = coordinator.run(periods, Strategy.DAILY)
        assert result.summary.batches == 4
        assert result.statistics.total_commits == len(commits)

    def test_external_calls_share_one_pool_per_run(self, daily, stub_source, stub_oracle):
        commits, periods = daily(6)
        threads = set()

        class Recording(stub_source):
            def get_commits(self, commit_range):
                threads.add(threading.current_thread().name)
                return super().get_commits(commit_range)

        coordinator = ExecutionCoordinator(Recording(commits), stub_oracle(), make_config(max_concurrency=2))
        coordinator.run(periods, Strategy.DAILY)

        assert threads
        assert all(name.startswith("chronicle-call") for name in threads)
        assert len(threads) <= 4

    def test_progress_callback(self, daily, stub_source, stub_oracle):
        commits, periods = daily(5)
        progress = []
        coordinator = ExecutionCoordinator(
            stub_source(commits),
            stub_oracle(),
            make_config(max_concurrency=2),
            sleep=no_sleep,
            on_progress=lambda done, total: progress.append((done, total)),
        )
        coordinator.run(periods, Strategy.DAILY)
        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_cancel_stops_after_current_batch(self, daily, stub_source, stub_oracle):
        commits, periods = daily(6)
        holder = {}
        coordinator = ExecutionCoordinator(
            stub_source(commits),
            stub_oracle(),
            make_config(),
            sleep=no_sleep,
            on_progress=lambda done, total: holder["coordinator"].cancel(),
        )
        holder["coordinator"] = coordinator

        result = coordinator.run(periods, Strategy.DAILY)

        assert coordinator.cancelled
        assert result.summary.cancelled
        assert result.summary.batches == 1
        assert len(result.periods) == 3


class TestFailures:
    def test_transient_failures_are_retried(self, daily, stub_source, stub_oracle):
        commits, periods = daily(1)
        source = stub_source(commits, fail_times=2, error=TransientError("git log", "busy"))
        result = ExecutionCoordinator(source, stub_oracle(), make_config(), sleep=no_sleep).run(
            periods, Strategy.DAILY
        )
        assert result.summary.retries == 2
        assert result.summary.placeholders == 0
        assert result.periods[0].statistics.commit_count == 2

    def test_exhausted_retries_yield_placeholder(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(1)
        source = stub_source(commits, fail_times=10, error=TransientError("git log", "down"))
        cache = ChronicleCache(str(tmp_path / "cache"))

        result = ExecutionCoordinator(source, stub_oracle(), make_config(), cache=cache, sleep=no_sleep).run(
            periods, Strategy.DAILY
        )

        (placeholder,) = result.periods
        assert placeholder.is_placeholder
        assert "down" in placeholder.error
        assert placeholder.changes == {}
        assert result.summary.placeholders == 1
        assert result.summary.retries == 2
        assert source.calls == 3

        # Placeholders are never cached
        healthy = stub_source(commits)
        again = ExecutionCoordinator(healthy, stub_oracle(), make_config(), cache=cache, sleep=no_sleep).run(
            periods, Strategy.DAILY
        )
        assert again.periods[0].cache is CacheStatus.MISS
        assert not again.periods[0].is_placeholder

    def test_non_transient_error_is_not_retried(self, daily, stub_source, stub_oracle):
        commits, periods = daily(1)
        source = stub_source(commits, fail_times=1, error=ValueError("corrupt"))
        result = ExecutionCoordinator(source, stub_oracle(), make_config(), sleep=no_sleep).run(
            periods, Strategy.DAILY
        )
        assert result.periods[0].is_placeholder
        assert result.summary.retries == 0
        assert source.calls == 1

    def test_input_error_is_fatal(self, daily, stub_source, stub_oracle):
        commits, periods = daily(1)
        source = stub_source(commits, fail_times=1, error=InputError("not a repository"))
        with pytest.raises(InputError):
            ExecutionCoordinator(source, stub_oracle(), make_config(), sleep=no_sleep).run(
                periods, Strategy.DAILY
            )

    def test_one_failure_does_not_sink_the_batch(self, daily, stub_source, stub_oracle):
        commits, periods = daily(3)

        class Partial(stub_source):
            def get_commits(self, commit_range):
                if commit_range.since == periods[1].start:
                    raise TransientError("git log", "flaky")
                return super().get_commits(commit_range)

        result = ExecutionCoordinator(Partial(commits), stub_oracle(), make_config(), sleep=no_sleep).run(
            periods, Strategy.DAILY
        )
        assert [a.is_placeholder for a in result.periods] == [False, True, False]


class TestCache:
    def test_second_run_hits_cache_with_identical_results(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(4)
        cache_dir = str(tmp_path / "cache")

        def run():
            return ExecutionCoordinator(
                stub_source(commits),
                stub_oracle(),
                make_config(),
                cache=ChronicleCache(cache_dir),
                sleep=no_sleep,
            ).run(periods, Strategy.DAILY)

        first = run()
        second = run()

        assert first.summary.cache_misses == 4
        assert second.summary.cache_hits == 4
        assert all(a.cache is CacheStatus.HIT for a in second.periods)
        assert [replace(a, cache=CacheStatus.MISS) for a in second.periods] == list(first.periods)
        assert second.statistics == first.statistics

    def test_forced_miss_gives_same_logical_result(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(4)
        cached = ExecutionCoordinator(
            stub_source(commits), stub_oracle(), make_config(), cache=ChronicleCache(str(tmp_path / "c"))
        ).run(periods, Strategy.DAILY)
        uncached = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config()).run(
            periods, Strategy.DAILY
        )
        assert uncached.periods == cached.periods
        assert uncached.statistics == cached.statistics

    def test_fingerprint_change_invalidates_everything(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(2)
        cache_dir = str(tmp_path / "cache")

        ExecutionCoordinator(
            stub_source(commits), stub_oracle(), make_config(), cache=ChronicleCache(cache_dir)
        ).run(periods, Strategy.DAILY)
        changed = ExecutionCoordinator(
            stub_source(commits),
            stub_oracle(),
            make_config(confidence_threshold=0.9),
            cache=ChronicleCache(cache_dir),
        ).run(periods, Strategy.DAILY)

        assert changed.summary.cache_hits == 0
        assert any("cache fingerprint" in w for w in changed.summary.warnings)

    def test_execution_settings_do_not_invalidate(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(2)
        cache_dir = str(tmp_path / "cache")
        for concurrency in (1, 3):
            result = ExecutionCoordinator(
                stub_source(commits),
                stub_oracle(),
                make_config(max_concurrency=concurrency),
                cache=ChronicleCache(cache_dir),
            ).run(periods, Strategy.DAILY)
        assert result.summary.cache_hits == 2


class TestArtifacts:
    def test_matching_disabled_is_a_data_gap(self, daily, stub_source, stub_oracle):
        commits, periods = daily(1)
        result = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config(enabled=False)).run(
            periods, Strategy.DAILY
        )
        assert result.summary.data_gaps == ("Artifact data unavailable: matching disabled (reason=matching disabled)",)

    def test_no_catalog_is_a_data_gap(self, daily, stub_source, stub_oracle):
        commits, periods = daily(1)
        result = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config()).run(
            periods, Strategy.DAILY
        )
        assert len(result.summary.data_gaps) == 1
        assert "no artifact source" in result.summary.data_gaps[0]

    def test_unavailable_source_skips_matching(self, daily, stub_source, stub_oracle, stub_artifacts):
        commits, periods = daily(2)
        artifacts = stub_artifacts(error=TransientError("list issue", "HTTP 503"))
        catalog = ArtifactCatalog(artifacts, "octo/repo")

        result = ExecutionCoordinator(
            stub_source(commits), stub_oracle(), make_config(), catalog=catalog, sleep=no_sleep
        ).run(periods, Strategy.DAILY)

        assert len(result.summary.data_gaps) == 1
        assert "kind=issue" in result.summary.data_gaps[0]
        assert result.summary.placeholders == 0
        assert result.statistics.artifact_references == 0

    def test_configuration_error_from_source_is_a_gap(self, daily, stub_source, stub_oracle, stub_artifacts):
        commits, periods = daily(1)
        catalog = ArtifactCatalog(stub_artifacts(error=ConfigurationError("missing file")), "repo")
        result = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config(), catalog=catalog).run(
            periods, Strategy.DAILY
        )
        assert "missing file" in result.summary.data_gaps[0]

    def test_malformed_artifact_file_is_a_gap(self, daily, stub_source, stub_oracle, tmp_path):
        commits, periods = daily(2)
        path = tmp_path / "artifacts.json"
        path.write_text(json.dumps({"issue": [{"title": "no id"}]}))
        catalog = ArtifactCatalog(JsonArtifactSource(path), "octo/repo")

        result = ExecutionCoordinator(
            stub_source(commits), stub_oracle(), make_config(), catalog=catalog, sleep=no_sleep
        ).run(periods, Strategy.DAILY)

        assert len(result.summary.data_gaps) == 1
        assert "kind=issue" in result.summary.data_gaps[0]
        assert "issue record" in result.summary.data_gaps[0]
        assert len(result.periods) == len(periods)
        assert result.summary.placeholders == 0

    def test_explicit_references_are_matched(self, make_commit, make_artifact, stub_source, stub_oracle, stub_artifacts):
        commits = [make_commit("a", START + timedelta(hours=3), message="fix: crash (#12)")]
        periods = compute_periods(Strategy.DAILY, commits, [], make_config().planning, now=START + timedelta(days=30))
        issue = make_artifact(kind=ArtifactKind.ISSUE, id=12, title="Crash")
        catalog = ArtifactCatalog(stub_artifacts({ArtifactKind.ISSUE: [issue]}), "octo/repo")

        result = ExecutionCoordinator(stub_source(commits), stub_oracle(), make_config(), catalog=catalog).run(
            periods, Strategy.DAILY
        )

        refs = result.periods[0].artifact_refs
        assert [(r.kind, r.id, r.confidence) for r in refs] == [(ArtifactKind.ISSUE, 12, 1.0)]
        assert result.summary.data_gaps == ()
