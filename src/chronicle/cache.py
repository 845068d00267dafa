"""
Caching system for Chronicle.

Uses diskcache for SQLite-based persistent caching. One store holds two
partitions:

- period analyses, keyed by configuration fingerprint + period identity
- artifact lists, keyed by repository + artifact kind, each with its own TTL

diskcache writes are atomic per key, so concurrent period jobs never need a
lock: each job only ever writes its own key.
"""

from __future__ import annotations

from typing import Any, Optional

from diskcache import Cache

from .exceptions import ConfigConflict
from .logging_config import get_logger

logger = get_logger(__name__)

_FINGERPRINT_KEY = "meta:fingerprint"


class ChronicleCache:
    """
    Keyed store for period analyses and artifact lists.

    The store is handed to the coordinator explicitly; its lifecycle is bound
    to a run through ``open()`` and ``close()`` (or a ``with`` block).

    Features:
    - Whole-cache invalidation when the configuration fingerprint changes
    - TTL-based expiration per entry
    - Disabled mode that stores nothing
    """

    def __init__(
        self,
        cache_dir: str = ".chronicle-cache",
        ttl_hours: int = 24 * 7,
        artifact_ttl_hours: int = 24,
        enabled: bool = True,
    ):
        self.cache_dir = cache_dir
        self.enabled = enabled
        self.ttl_seconds = ttl_hours * 3600
        self.artifact_ttl_seconds = artifact_ttl_hours * 3600
        self.cache: Optional[Cache] = None
        self.conflicts: list[ConfigConflict] = []

    @classmethod
    def from_config(cls, config) -> "ChronicleCache":
        return cls(
            cache_dir=config.cache_dir,
            ttl_hours=config.cache_ttl_hours,
            artifact_ttl_hours=config.artifact_ttl_hours,
            enabled=config.cache_enabled,
        )

    def open(self, fingerprint: Optional[str] = None) -> "ChronicleCache":
        """Open the backing store and reconcile the configuration fingerprint.

        A fingerprint different from the stored one invalidates every entry,
        artifact partitions included.
        """
        self.conflicts = []
        if not self.enabled:
            logger.debug("Cache disabled")
            return self

        if self.cache is None:
            self.cache = Cache(self.cache_dir)
            logger.debug(f"Cache opened at {self.cache_dir}")

        if fingerprint is not None:
            stored = self.cache.get(_FINGERPRINT_KEY)
            if stored is not None and stored != fingerprint:
                conflict = ConfigConflict("cache fingerprint", fingerprint, stored)
                logger.warning(f"{conflict}; invalidating the whole cache")
                self.conflicts.append(conflict)
                self.cache.clear()
            self.cache.set(_FINGERPRINT_KEY, fingerprint)

        return self

    # -- period partition ---------------------------------------------------

    @staticmethod
    def period_key(fingerprint: str, period_id: str, revision: str) -> str:
        return f"period:{fingerprint}:{period_id}:{revision}"

    def get_period(self, fingerprint: str, period_id: str, revision: str) -> Optional[Any]:
        return self.get(self.period_key(fingerprint, period_id, revision))

    def set_period(self, fingerprint: str, period_id: str, revision: str, value: Any) -> None:
        self.set(self.period_key(fingerprint, period_id, revision), value, self.ttl_seconds)

    # -- artifact partition -------------------------------------------------

    @staticmethod
    def artifact_key(repo: str, kind: str) -> str:
        return f"artifacts:{repo}:{kind}"

    def get_artifacts(self, repo: str, kind: str) -> Optional[Any]:
        return self.get(self.artifact_key(repo, kind))

    def set_artifacts(self, repo: str, kind: str, value: Any) -> None:
        self.set(self.artifact_key(repo, kind), value, self.artifact_ttl_seconds)

    # -- raw access ---------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled or self.cache is None:
            return None

        try:
            value = self.cache.get(key)
            if value is not None:
                logger.debug(f"Cache hit: {key}")
            return value
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> None:
        if not self.enabled or self.cache is None:
            return

        try:
            # expire of 0 means the entry never expires
            self.cache.set(key, value, expire=expire or None)
            logger.debug(f"Cache set: {key}")
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")

    def clear(self) -> None:
        """Clear all cache entries."""
        if not self.enabled:
            return
        if self.cache is None:
            self.cache = Cache(self.cache_dir)

        try:
            self.cache.clear()
            logger.info("Cache cleared")
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        if not self.enabled:
            return {"enabled": False}
        if self.cache is None:
            self.cache = Cache(self.cache_dir)

        try:
            keys = list(self.cache.iterkeys())
            return {
                "enabled": True,
                "size": len(self.cache),
                "periods": sum(1 for k in keys if str(k).startswith("period:")),
                "artifact_partitions": sum(1 for k in keys if str(k).startswith("artifacts:")),
                "fingerprint": self.cache.get(_FINGERPRINT_KEY),
                "directory": self.cache.directory,
                "volume": self.cache.volume(),
            }
        except Exception as e:
            logger.warning(f"Cache stats failed: {e}")
            return {"enabled": True, "error": str(e)}

    def close(self) -> None:
        """Flush and close the backing store."""
        if self.cache is not None:
            self.cache.close()
            self.cache = None

    def __enter__(self) -> "ChronicleCache":
        return self.open()

    def __exit__(self, *args) -> None:
        self.close()
