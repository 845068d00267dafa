"""Release detection from tags and version-file bumps."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from ..logging_config import get_logger
from ..sources.models import Tag
from .calendar import to_utc
from .models import Release

logger = get_logger(__name__)

# Accepts "1", "1.2", "1.2.3", optional "v"/"release-" prefix, pre-release and build suffixes
_VERSION_RE = re.compile(
    r"^(?:release[-_/]?|version[-_/]?)?v?"
    r"(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+(?P<build>[0-9A-Za-z.-]+))?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class VersionBump:
    """A version string introduced by a commit touching a version file."""

    version: str
    date: datetime
    commit: str


def normalize_version(raw: str) -> Optional[str]:
    """Canonical form of a version string, or None if it is not one.

    >>> normalize_version("v1.2")
    '1.2.0'
    """
    match = _VERSION_RE.match(raw.strip())
    if not match:
        return None
    core = ".".join(match.group(g) or "0" for g in ("major", "minor", "patch"))
    if match.group("pre"):
        core = f"{core}-{match.group('pre')}"
    return core


def version_key(version: str) -> tuple:
    """Sort key with semantic-version precedence.

    Numeric parts compare numerically; a pre-release sorts below its final
    release; pre-release identifiers compare numerically when both are numbers.
    Unparseable strings sort below every real version.
    """
    normalized = normalize_version(version)
    if normalized is None:
        return (-1, -1, -1, 0, ())

    core, _, pre = normalized.partition("-")
    major, minor, patch = (int(p) for p in core.split("."))
    if not pre:
        return (major, minor, patch, 1, ())

    identifiers = tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part) for part in pre.split(".")
    )
    return (major, minor, patch, 0, identifiers)


def compute_releases(
    tags: Iterable[Tag], version_bumps: Iterable[VersionBump] = ()
) -> list[Release]:
    """Union tag-sourced and file-sourced releases.

    Tags that are not versions are ignored. When both sources produce the same
    version, the tag wins. Output is ordered by date, then version.
    """
    by_version: dict[str, Release] = {}

    for tag in tags:
        version = normalize_version(tag.name)
        if version is None:
            logger.debug(f"Ignoring non-version tag {tag.name!r}")
            continue
        existing = by_version.get(version)
        # Two tags naming one version: keep the earlier
        if existing is None or to_utc(tag.date) < existing.date:
            by_version[version] = Release(
                version=version,
                name=tag.name,
                date=to_utc(tag.date),
                commit=tag.commit,
                source="tag",
            )

    for bump in version_bumps:
        version = normalize_version(bump.version)
        if version is None:
            continue
        existing = by_version.get(version)
        if existing is not None:
            if existing.source == "tag" or existing.date <= to_utc(bump.date):
                continue
        by_version[version] = Release(
            version=version,
            name=bump.version,
            date=to_utc(bump.date),
            commit=bump.commit,
            source="file",
        )

    return sorted(by_version.values(), key=lambda r: (r.date, version_key(r.version)))


def resolve_multiplicity(releases: list[Release]) -> tuple[Optional[Release], list[Release]]:
    """Pick the highest version among releases sharing one period.

    Returns:
        (winner, superseded) where superseded releases are marked as such
    """
    if not releases:
        return None, []
    ordered = sorted(releases, key=lambda r: version_key(r.version), reverse=True)
    winner = ordered[0]
    superseded = [replace(r, superseded=True) for r in ordered[1:]]
    return winner, superseded
