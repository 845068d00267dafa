"""Configuration loading and management for Chronicle.

Configuration sources are merged in priority order (lowest to highest):
    1. Defaults (defined in ChronicleConfig and its sections)
    2. Global config (~/.chronicle.toml)
    3. Project config (./chronicle.toml)
    4. Explicit config file
    5. Environment variables (CHRONICLE_* prefix)
    6. Call-site overrides (passed as kwargs)

The merge happens once; every component receives the resulting immutable
ChronicleConfig and never re-derives priority order.

Example:
    >>> config = load_config(strategy="weekly", max_concurrency=4)
    >>> config.planning.strategy
    'weekly'
    >>> config.execution.max_concurrency
    4
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

STRATEGIES = ("auto", "daily", "weekly", "monthly", "release")
ARTIFACT_KINDS = ("issue", "pr", "milestone", "project")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Hard ceiling on parallel period jobs regardless of configuration
MAX_CONCURRENCY_CAP = 5


@dataclass(frozen=True)
class PlanningConfig:
    """Period planning parameters.

    The detection thresholds are rough defaults, not derived optima. Tune them
    per repository if the auto-selected granularity feels wrong.

    Attributes:
        strategy: auto, daily, weekly, monthly or release
        week_start: Weekday that opens a weekly window
        daily_threshold: Commits/week above which auto picks daily periods
        weekly_threshold: Commits/week above which auto picks weekly periods
        mature_age_days: Project age after which auto prefers monthly periods
        summary_threshold: First-period commit count that switches it to summary mode
        skip_empty: Omit windows without commits
        skip_merge_only: Omit windows whose commits are all merges
        version_files: Files probed for version bumps when detecting releases
    """

    strategy: str = "auto"
    week_start: str = "monday"
    daily_threshold: float = 50.0
    weekly_threshold: float = 10.0
    mature_age_days: int = 180
    summary_threshold: int = 100
    skip_empty: bool = True
    skip_merge_only: bool = True
    version_files: tuple[str, ...] = (
        "pyproject.toml",
        "setup.py",
        "setup.cfg",
        "package.json",
        "Cargo.toml",
        "VERSION",
    )

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise InvalidConfigError(
                "planning.strategy", self.strategy, f"must be one of {', '.join(STRATEGIES)}"
            )
        if self.week_start.lower() not in WEEKDAYS:
            raise InvalidConfigError("planning.week_start", self.week_start, "must be a weekday name")
        for name in ("daily_threshold", "weekly_threshold"):
            if getattr(self, name) < 0:
                raise InvalidConfigError(f"planning.{name}", getattr(self, name), "must be non-negative")
        if self.daily_threshold < self.weekly_threshold:
            raise InvalidConfigError(
                "planning.daily_threshold", self.daily_threshold, "must be >= weekly_threshold"
            )
        if self.mature_age_days < 0:
            raise InvalidConfigError("planning.mature_age_days", self.mature_age_days, "must be non-negative")
        if self.summary_threshold < 1:
            raise InvalidConfigError("planning.summary_threshold", self.summary_threshold, "must be at least 1")
        # TOML arrays arrive as lists
        object.__setattr__(self, "version_files", tuple(self.version_files))

    @property
    def week_start_index(self) -> int:
        """Weekday index of week_start (Monday = 0)."""
        return WEEKDAYS.index(self.week_start.lower())


@dataclass(frozen=True)
class MatchingConfig:
    """Artifact matching parameters.

    Attributes:
        enabled: Run artifact matching at all
        kinds: Artifact kinds to fetch and match
        confidence_threshold: References below this are discarded
        time_window_days: Temporal window; artifacts outside it are not candidates
        semantic_threshold: Raw oracle scores below this are discarded
        semantic_ceiling: Upper end of the rescaled semantic range
        semantic_veto_floor: Raw semantic score under which a candidate is dropped
            even if temporally close (0.0 disables the veto)
        both_signals_bonus: Bonus when temporal and semantic both cleared
        branch_bonus: Bonus when temporal cleared and a PR's branch matches
        multi_signal_bonus: Bonus when three or more signals cleared
        enable_explicit / enable_temporal / enable_semantic / enable_labels:
            Per-stage switches
    """

    enabled: bool = True
    kinds: tuple[str, ...] = ARTIFACT_KINDS
    confidence_threshold: float = 0.85
    time_window_days: int = 30
    semantic_threshold: float = 0.40
    semantic_ceiling: float = 0.95
    semantic_veto_floor: float = 0.0
    both_signals_bonus: float = 0.15
    branch_bonus: float = 0.10
    multi_signal_bonus: float = 0.20
    enable_explicit: bool = True
    enable_temporal: bool = True
    enable_semantic: bool = True
    enable_labels: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "kinds", tuple(self.kinds))
        for kind in self.kinds:
            if kind not in ARTIFACT_KINDS:
                raise InvalidConfigError("matching.kinds", kind, "unknown artifact kind")

        for field_name in (
            "confidence_threshold",
            "semantic_threshold",
            "semantic_ceiling",
            "semantic_veto_floor",
            "both_signals_bonus",
            "branch_bonus",
            "multi_signal_bonus",
        ):
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfigError(f"matching.{field_name}", value, "must be between 0.0 and 1.0")

        if self.semantic_threshold >= 1.0:
            raise InvalidConfigError("matching.semantic_threshold", self.semantic_threshold, "must be below 1.0")
        if self.semantic_ceiling < self.semantic_threshold:
            raise InvalidConfigError(
                "matching.semantic_ceiling", self.semantic_ceiling, "must be >= semantic_threshold"
            )
        if self.time_window_days < 0:
            raise InvalidConfigError("matching.time_window_days", self.time_window_days, "must be non-negative")


@dataclass(frozen=True)
class ExecutionConfig:
    """Scheduling and resilience parameters.

    Attributes:
        max_concurrency: Period jobs running at once (capped at 5)
        max_retries: Retries for transient failures before a placeholder is used
        backoff_base_seconds: First retry delay; doubles on each retry
        backoff_max_seconds: Upper bound on a single retry delay
        call_timeout_seconds: Timeout applied to every external call
    """

    max_concurrency: int = 3
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    call_timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if not 1 <= self.max_concurrency <= MAX_CONCURRENCY_CAP:
            raise InvalidConfigError(
                "execution.max_concurrency", self.max_concurrency, f"must be between 1 and {MAX_CONCURRENCY_CAP}"
            )
        if self.max_retries < 0:
            raise InvalidConfigError("execution.max_retries", self.max_retries, "must be non-negative")
        for name in ("backoff_base_seconds", "backoff_max_seconds"):
            if getattr(self, name) < 0:
                raise InvalidConfigError(f"execution.{name}", getattr(self, name), "must be non-negative")
        if self.call_timeout_seconds <= 0:
            raise InvalidConfigError(
                "execution.call_timeout_seconds", self.call_timeout_seconds, "must be positive"
            )


@dataclass(frozen=True)
class ChronicleConfig:
    """Resolved configuration for one Chronicle run.

    Attributes:
        planning: Period planning section
        matching: Artifact matching section
        execution: Scheduling section
        cache_enabled: Persist period analyses and artifact lists on disk
        cache_dir: Directory for cache storage
        cache_ttl_hours: Lifetime of cached period analyses
        artifact_ttl_hours: Lifetime of each cached artifact-kind partition
        repository: Artifact repository identity (e.g. "owner/name")
        verbosity: Logging verbosity level
    """

    planning: PlanningConfig = field(default_factory=PlanningConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    cache_enabled: bool = True
    cache_dir: str = ".chronicle-cache"
    cache_ttl_hours: int = 24 * 7
    artifact_ttl_hours: int = 24

    repository: Optional[str] = None
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        if self.cache_ttl_hours < 0:
            raise InvalidConfigError("cache_ttl_hours", self.cache_ttl_hours, "must be non-negative")
        if self.artifact_ttl_hours < 0:
            raise InvalidConfigError("artifact_ttl_hours", self.artifact_ttl_hours, "must be non-negative")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "must be quiet, normal or verbose")

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_hours * 3600

    @property
    def artifact_ttl_seconds(self) -> int:
        return self.artifact_ttl_hours * 3600

    def fingerprint(self) -> str:
        """Hash of every setting that changes analysis output.

        Execution and cache settings are excluded: they change how results are
        produced, not what they contain.
        """
        return compute_config_hash(
            {
                "planning": dataclasses.asdict(self.planning),
                "matching": dataclasses.asdict(self.matching),
                "repository": self.repository,
            }
        )


def compute_config_hash(config: dict) -> str:
    """
    Compute hash of configuration for cache invalidation.

    Args:
        config: Configuration dictionary

    Returns:
        First 16 hex chars of the SHA256 of the sorted-key JSON
    """
    config_str = json.dumps(config, sort_keys=True, default=list)
    return hashlib.sha256(config_str.encode()).hexdigest()[:16]


_SECTIONS = {
    "planning": PlanningConfig,
    "matching": MatchingConfig,
    "execution": ExecutionConfig,
}


def load_config(config_file: Optional[Path] = None, **overrides) -> ChronicleConfig:
    """Load configuration with auto-discovery and merging.

    Flat override keys that belong to a section (e.g. ``strategy`` or
    ``max_concurrency``) are routed into that section, so CLI flags can be
    passed straight through.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated ChronicleConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a section rejects a resolved value
    """
    merged: dict[str, Any] = {name: {} for name in _SECTIONS}

    global_config = Path.home() / ".chronicle.toml"
    if global_config.exists():
        try:
            _merge(merged, _load_toml_file(global_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "chronicle.toml"
    if project_config.exists():
        try:
            _merge(merged, _load_toml_file(project_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            _merge(merged, _load_toml_file(config_file))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    _merge(merged, _load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    _merge(merged, {k: v for k, v in overrides.items() if v is not None})

    try:
        sections = {name: cls(**merged.pop(name)) for name, cls in _SECTIONS.items()}
        return ChronicleConfig(**sections, **merged)
    except InvalidConfigError:
        raise
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration value: {e}")


def _merge(merged: dict[str, Any], source: dict[str, Any]) -> None:
    """Merge a raw mapping into the sectioned accumulator."""
    for key, value in source.items():
        if key in _SECTIONS:
            if isinstance(value, dict):
                merged[key].update(value)
            elif dataclasses.is_dataclass(value):
                merged[key].update(dataclasses.asdict(value))
            else:
                raise ConfigurationError(f"[{key}] must be a table")
            continue

        section = _section_for(key)
        if section is not None:
            merged[section][key] = value
        else:
            merged[key] = value


def _section_for(key: str) -> Optional[str]:
    for name, cls in _SECTIONS.items():
        if key in cls.__dataclass_fields__:
            return name
    return None


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CHRONICLE_* environment variables.

    Every scalar field of the config and its sections can be set, e.g.
    CHRONICLE_STRATEGY=weekly, CHRONICLE_MAX_CONCURRENCY=4,
    CHRONICLE_CACHE_ENABLED=false. Tuple fields are not supported.

    Returns:
        Dict of field_name -> parsed_value for any CHRONICLE_* vars found.
    """
    result: dict[str, Any] = {}

    classes = [ChronicleConfig, *_SECTIONS.values()]
    for cls in classes:
        type_hints = get_type_hints(cls)
        for field_name in cls.__dataclass_fields__:
            if field_name in _SECTIONS:
                continue
            env_key = f"CHRONICLE_{field_name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is None:
                continue

            type_hint = type_hints.get(field_name)
            if type_hint is None:
                continue

            try:
                parsed = _parse_env_value(env_value, type_hint)
                if parsed is not None:
                    result[field_name] = parsed
            except ValueError as e:
                raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns:
        Parsed value or None if the type is not supported

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin in (list, tuple) or type_hint in (list, tuple):
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
