"""Tests for config.py - layered configuration loading."""

import pytest

from chronicle.config import (
    ChronicleConfig,
    ExecutionConfig,
    MatchingConfig,
    PlanningConfig,
    compute_config_hash,
    load_config,
)
from chronicle.exceptions import ConfigurationError, InvalidConfigError


class TestDefaults:
    def test_documented_defaults(self):
        config = ChronicleConfig()
        assert config.planning.strategy == "auto"
        assert config.planning.summary_threshold == 100
        assert config.matching.confidence_threshold == 0.85
        assert config.matching.semantic_veto_floor == 0.0
        assert config.matching.time_window_days == 30
        assert config.execution.max_concurrency == 3
        assert config.execution.max_retries == 3
        assert config.artifact_ttl_hours == 24

    def test_frozen(self):
        config = ChronicleConfig()
        with pytest.raises(Exception):
            config.cache_dir = "elsewhere"


class TestValidation:
    def test_concurrency_cap(self):
        with pytest.raises(ValueError):
            ExecutionConfig(max_concurrency=6)
        with pytest.raises(ValueError):
            ExecutionConfig(max_concurrency=0)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            PlanningConfig(strategy="yearly")

    def test_unknown_week_start(self):
        with pytest.raises(ValueError):
            PlanningConfig(week_start="someday")

    def test_confidence_range(self):
        with pytest.raises(ValueError):
            MatchingConfig(confidence_threshold=1.5)

    def test_unknown_artifact_kind(self):
        with pytest.raises(ValueError):
            MatchingConfig(kinds=("issue", "wiki"))

    def test_rejection_names_the_setting(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            ExecutionConfig(call_timeout_seconds=0)
        assert exc_info.value.key == "execution.call_timeout_seconds"
        assert exc_info.value.value == 0
        assert exc_info.value.reason == "must be positive"

    def test_threshold_rejection_reports_which_threshold(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            PlanningConfig(weekly_threshold=-1)
        assert exc_info.value.key == "planning.weekly_threshold"


class TestLoadConfig:
    def test_flat_overrides_are_routed(self):
        config = load_config(strategy="weekly", max_concurrency=4, confidence_threshold=0.9)
        assert config.planning.strategy == "weekly"
        assert config.execution.max_concurrency == 4
        assert config.matching.confidence_threshold == 0.9

    def test_none_overrides_are_ignored(self):
        assert load_config(strategy=None).planning.strategy == "auto"

    def test_verbose_flag(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"

    def test_project_toml(self, tmp_path):
        (tmp_path / "chronicle.toml").write_text(
            'repository = "octo/repo"\n\n[planning]\nstrategy = "monthly"\nversion_files = ["VERSION"]\n'
        )
        config = load_config()
        assert config.repository == "octo/repo"
        assert config.planning.strategy == "monthly"
        assert config.planning.version_files == ("VERSION",)

    def test_explicit_file_beats_project_file(self, tmp_path):
        (tmp_path / "chronicle.toml").write_text('[planning]\nstrategy = "monthly"\n')
        explicit = tmp_path / "custom.toml"
        explicit.write_text('[planning]\nstrategy = "daily"\n')
        assert load_config(config_file=explicit).planning.strategy == "daily"

    def test_env_beats_files_and_kwargs_beat_env(self, tmp_path, monkeypatch):
        (tmp_path / "chronicle.toml").write_text('[execution]\nmax_concurrency = 2\n')
        monkeypatch.setenv("CHRONICLE_MAX_CONCURRENCY", "4")
        assert load_config().execution.max_concurrency == 4
        assert load_config(max_concurrency=5).execution.max_concurrency == 5

    def test_env_booleans(self, monkeypatch):
        monkeypatch.setenv("CHRONICLE_CACHE_ENABLED", "false")
        assert load_config().cache_enabled is False

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("CHRONICLE_MAX_RETRIES", "many")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(config_file=tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("strategy = [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(config_file=bad)

    def test_invalid_value_becomes_configuration_error(self):
        with pytest.raises(ConfigurationError):
            load_config(max_concurrency=9)

    def test_invalid_value_keeps_its_key(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            load_config(max_concurrency=9)
        assert exc_info.value.key == "execution.max_concurrency"
        assert exc_info.value.details["value"] == "9"

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            load_config(no_such_setting=1)


class TestFingerprint:
    def test_stable(self):
        assert ChronicleConfig().fingerprint() == ChronicleConfig().fingerprint()
        assert len(ChronicleConfig().fingerprint()) == 16

    def test_analysis_settings_change_it(self):
        changed = ChronicleConfig(matching=MatchingConfig(confidence_threshold=0.9))
        assert changed.fingerprint() != ChronicleConfig().fingerprint()

    def test_execution_settings_do_not(self):
        changed = ChronicleConfig(execution=ExecutionConfig(max_concurrency=5), cache_enabled=False)
        assert changed.fingerprint() == ChronicleConfig().fingerprint()

    def test_hash_ignores_key_order(self):
        assert compute_config_hash({"a": 1, "b": 2}) == compute_config_hash({"b": 2, "a": 1})
