"""GitHub REST adapter for issues, pull requests, milestones and projects.

Requires a token for private repositories and to avoid the anonymous rate
limit. Network failures, rate limiting and 5xx responses surface as
TransientError so the coordinator can retry them.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import httpx

from ..exceptions import DataGap, TransientError
from ..logging_config import get_logger
from .artifacts import parse_timestamp
from .models import Artifact, ArtifactKind

logger = get_logger(__name__)

_ENDPOINTS = {
    ArtifactKind.ISSUE: "/repos/{repo}/issues",
    ArtifactKind.PR: "/repos/{repo}/pulls",
    ArtifactKind.MILESTONE: "/repos/{repo}/milestones",
    ArtifactKind.PROJECT: "/repos/{repo}/projects",
}

# Status codes that are worth retrying
_RETRYABLE = {429, 500, 502, 503, 504}


class GitHubArtifactSource:
    """Fetch artifacts from the GitHub REST API with Link-header pagination."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        max_pages: int = 10,
        client: Optional[httpx.Client] = None,
    ):
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.max_pages = max_pages

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        else:
            logger.info("GITHUB_TOKEN not set; using the anonymous rate limit")

        self._client = client or httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    def list_artifacts(self, kind: ArtifactKind, repo: str) -> list[Artifact]:
        path = _ENDPOINTS[kind].format(repo=repo)
        items = self._get_paginated(path, operation=f"list {kind.value}")

        artifacts = []
        for item in items:
            # The issues endpoint also returns pull requests
            if kind is ArtifactKind.ISSUE and "pull_request" in item:
                continue
            artifacts.append(self._to_artifact(kind, item))
        return artifacts

    def _get_paginated(self, path: str, operation: str) -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        url: Optional[str] = path
        params: Optional[dict[str, Any]] = {"state": "all", "per_page": 100}

        for _ in range(self.max_pages):
            if url is None:
                break
            try:
                response = self._client.get(url, params=params)
            except (httpx.TimeoutException, httpx.TransportError) as e:
                raise TransientError(operation, str(e))

            if response.status_code in _RETRYABLE:
                raise TransientError(operation, f"HTTP {response.status_code}")
            if response.status_code in (404, 410):
                # Classic projects are gone on many repositories
                logger.warning(f"{operation}: HTTP {response.status_code}, treating as empty")
                return results
            if response.is_error:
                raise DataGap(f"{operation}: HTTP {response.status_code}")

            results.extend(response.json())
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None
        else:
            if url is not None:
                logger.warning(f"{operation}: stopped after {self.max_pages} pages")

        return results

    @staticmethod
    def _to_artifact(kind: ArtifactKind, item: dict[str, Any]) -> Artifact:
        if kind is ArtifactKind.MILESTONE:
            title = item.get("title") or ""
            body = item.get("description") or ""
        elif kind is ArtifactKind.PROJECT:
            title = item.get("name") or ""
            body = item.get("body") or ""
        else:
            title = item.get("title") or ""
            body = item.get("body") or ""

        head = item.get("head") or {}
        return Artifact(
            kind=kind,
            id=int(item.get("number") or item["id"]),
            title=title,
            body=body,
            created_at=parse_timestamp(item.get("created_at")),
            updated_at=parse_timestamp(item.get("updated_at")),
            closed_at=parse_timestamp(item.get("closed_at")),
            merged_at=parse_timestamp(item.get("merged_at")),
            labels=tuple(label.get("name", "") for label in item.get("labels", [])),
            branch=head.get("ref"),
        )

    def close(self) -> None:
        self._client.close()
