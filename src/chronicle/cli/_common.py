"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import ChronicleConfig, load_config

console = Console()


def resolve_config(
    strategy: Optional[str] = None,
    concurrency: Optional[int] = None,
    no_cache: bool = False,
    verbose: bool = False,
    **extra,
) -> dict:
    """Translate CLI options into load_config overrides."""
    overrides = {k: v for k, v in extra.items() if v is not None}
    if strategy is not None:
        overrides["strategy"] = strategy
    if concurrency is not None:
        overrides["max_concurrency"] = concurrency
    if no_cache:
        overrides["cache_enabled"] = False
    if verbose:
        overrides["verbose"] = True
    return overrides


def load_settings(config: Optional[Path] = None, **options) -> ChronicleConfig:
    """Build the resolved configuration from CLI options."""
    return load_config(config_file=config, **resolve_config(**options))
