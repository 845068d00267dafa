"""Artifact catalog and the offline JSON artifact source."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ..exceptions import ConfigurationError
from ..logging_config import get_logger
from .models import Artifact, ArtifactKind
from .protocols import ArtifactSource

if TYPE_CHECKING:
    from ..cache import ChronicleCache

logger = get_logger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ArtifactCatalog:
    """Serve "current artifacts of kind K" for one repository.

    Owns the fetch policy: each kind is cached independently under the
    repository identity with its own TTL, so a stale PR list never forces an
    issue refetch. The matcher only ever sees the lists this returns.
    """

    def __init__(
        self,
        source: ArtifactSource,
        repo: str,
        cache: Optional[ChronicleCache] = None,
    ):
        self.source = source
        self.repo = repo
        self.cache = cache

    def current(self, kind: ArtifactKind) -> list[Artifact]:
        if self.cache is not None:
            cached = self.cache.get_artifacts(self.repo, kind.value)
            if cached is not None:
                logger.debug(f"Using cached {kind.value} list for {self.repo}")
                return list(cached)

        artifacts = self.source.list_artifacts(kind, self.repo)
        logger.debug(f"Fetched {len(artifacts)} {kind.value} artifacts for {self.repo}")

        if self.cache is not None:
            self.cache.set_artifacts(self.repo, kind.value, tuple(artifacts))
        return artifacts


class JsonArtifactSource:
    """Artifacts exported to a JSON file, for offline or air-gapped runs.

    Expected shape::

        {"issue": [{"id": 12, "title": "...", "created_at": "2024-01-02T10:00:00Z"}],
         "pr": [{"id": 15, "title": "...", "branch": "fix-login"}]}
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: Optional[dict[str, Any]] = None

    def list_artifacts(self, kind: ArtifactKind, repo: str) -> list[Artifact]:
        data = self._load()
        artifacts = []
        for item in data.get(kind.value, []):
            try:
                artifacts.append(self._to_artifact(kind, item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ConfigurationError(
                    f"Invalid {kind.value} record in '{self.path}': {e!r}"
                )
        return artifacts

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            if not self.path.exists():
                raise ConfigurationError(f"Artifact file not found: {self.path}")
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid artifact file '{self.path}': {e}")
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Invalid artifact file '{self.path}': expected an object keyed by kind"
                )
            self._data = data
        return self._data

    @staticmethod
    def _to_artifact(kind: ArtifactKind, item: dict[str, Any]) -> Artifact:
        return Artifact(
            kind=kind,
            id=int(item["id"]),
            title=item.get("title", ""),
            body=item.get("body") or "",
            created_at=parse_timestamp(item.get("created_at")),
            updated_at=parse_timestamp(item.get("updated_at")),
            closed_at=parse_timestamp(item.get("closed_at")),
            merged_at=parse_timestamp(item.get("merged_at")),
            labels=tuple(item.get("labels", ())),
            branch=item.get("branch"),
        )
