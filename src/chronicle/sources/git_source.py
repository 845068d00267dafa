"""Read commits, tags and version bumps from a local repository via subprocess."""

from __future__ import annotations

import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import InputError, TransientError
from ..logging_config import get_logger
from .models import CommitRange, CommitRecord, DiffStats, Tag

logger = get_logger(__name__)

_RECORD = "\x1e"
_FIELD = "\x1f"

# hash, committer timestamp, author email, parents, raw body
_LOG_FORMAT = f"{_RECORD}%H{_FIELD}%ct{_FIELD}%ae{_FIELD}%P{_FIELD}%B{_FIELD}"
_TAG_FORMAT = "%(refname:short)%1f%(creatordate:unix)%1f%(*objectname)%1f%(objectname)"

_MERGE_PR_RE = re.compile(r"^Merge pull request #\d+ from [^/\s]+/(\S+)")
_MERGE_BRANCH_RE = re.compile(r"^Merge (?:remote-tracking )?branch '([^']+)'")

# Added lines such as: version = "1.2.0", "version": "1.2.0", __version__ = '1.2.0'
_VERSION_ASSIGN_RE = re.compile(
    r"""^\+\s*(?:__version__|["']?version["']?)\s*[:=]\s*["']([^"']+)["']""",
    re.IGNORECASE,
)
# A bare version line, as found in VERSION files
_VERSION_LINE_RE = re.compile(r"^\+\s*v?(\d+\.\d+(?:\.\d+)?(?:[-+.][0-9A-Za-z.]+)?)\s*$")


def branch_from_subject(subject: str) -> Optional[str]:
    """Recover the source branch from a merge commit subject."""
    for pattern in (_MERGE_PR_RE, _MERGE_BRANCH_RE):
        match = pattern.match(subject)
        if match:
            return match.group(1)
    return None


class GitCommitSource:
    """Parse git plumbing output into CommitRecord and Tag objects."""

    def __init__(self, repo_path: str, timeout: float = 60.0):
        self.repo_path = str(Path(repo_path).resolve())
        self.timeout = timeout

    def get_commits(self, commit_range: CommitRange) -> list[CommitRecord]:
        """Commits inside ``commit_range``, oldest first."""
        cmd = ["log", "--reverse", f"--format={_LOG_FORMAT}", "--numstat"]
        if commit_range.since is not None:
            cmd.append(f"--since=@{int(commit_range.since.timestamp())}")
        if commit_range.until is not None:
            cmd.append(f"--until=@{int(commit_range.until.timestamp())}")

        raw = self._run(cmd, operation="git log")
        commits = [c for c in self._parse_log(raw) if commit_range.contains(c.timestamp)]
        logger.debug(f"Read {len(commits)} commits from {self.repo_path}")
        return commits

    def get_tags(self) -> list[Tag]:
        raw = self._run(
            ["for-each-ref", "--sort=creatordate", f"--format={_TAG_FORMAT}", "refs/tags"],
            operation="git for-each-ref",
        )
        tags = []
        for line in raw.splitlines():
            parts = line.split(_FIELD)
            if len(parts) != 4 or not parts[1]:
                continue
            name, created, peeled, target = parts
            try:
                date = datetime.fromtimestamp(int(created), tz=timezone.utc)
            except ValueError:
                logger.debug(f"Skipping tag with unreadable date: {name}")
                continue
            # Annotated tags point at a tag object; the peeled id is the commit
            tags.append(Tag(name=name, date=date, commit=peeled or target))
        return tags

    def get_version_file_diff(self, commit: str, files: Sequence[str]) -> Optional[str]:
        if not files:
            return None
        raw = self._run(
            ["show", "--format=", "--unified=0", commit, "--", *files],
            operation="git show",
        )
        for line in raw.splitlines():
            if line.startswith("+++"):
                continue
            match = _VERSION_ASSIGN_RE.match(line) or _VERSION_LINE_RE.match(line)
            if match:
                return match.group(1)
        return None

    def _run(self, args: list[str], operation: str) -> str:
        cmd = ["git", "-C", self.repo_path, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise TransientError(operation, f"timed out after {self.timeout}s")
        except FileNotFoundError:
            raise InputError("git executable not found")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            if "not a git repository" in stderr:
                raise InputError(f"{self.repo_path} is not a git repository")
            if "index.lock" in stderr or "Connection" in stderr:
                raise TransientError(operation, stderr)
            raise InputError(f"{operation} failed: {stderr}")
        return result.stdout

    def _parse_log(self, raw: str) -> list[CommitRecord]:
        """Parse ``git log`` records separated by the record-separator byte.

        Each record carries five header fields followed by numstat lines.
        Merge commits have no numstat block.
        """
        commits = []
        for record in raw.split(_RECORD):
            if not record.strip():
                continue
            parts = record.split(_FIELD, 5)
            if len(parts) < 6:
                logger.debug("Skipping malformed git log record")
                continue

            sha, committed, author, parents, body, numstat = parts
            try:
                timestamp = datetime.fromtimestamp(int(committed), tz=timezone.utc)
            except ValueError:
                continue

            message = body.strip()
            commits.append(
                CommitRecord(
                    hash=sha.strip(),
                    timestamp=timestamp,
                    author=author,
                    message=message,
                    stats=self._parse_numstat(numstat),
                    parents=tuple(parents.split()),
                    branch=branch_from_subject(message.split("\n", 1)[0]),
                )
            )
        return commits

    @staticmethod
    def _parse_numstat(block: str) -> DiffStats:
        files = []
        insertions = 0
        deletions = 0
        for line in block.splitlines():
            fields = line.strip().split("\t")
            if len(fields) != 3:
                continue
            added, removed, path = fields
            # Binary files report "-" for both counts
            if added.isdigit():
                insertions += int(added)
            if removed.isdigit():
                deletions += int(removed)
            files.append(path)
        return DiffStats(files=tuple(files), insertions=insertions, deletions=deletions)
