"""
In-process TTL caches for selections, file content and repository metadata.

Three logical caches share one entry shape with different key schemes and TTLs:

    selection  "<namespace>:<lower-trimmed query>"      24h
    content    "<namespace>:<path>:<content hash>"      1h
    metadata   "<namespace>"                            15min

State lives for the process lifetime only. Caches are owned by a CacheService that
callers construct and inject; there is no module-level singleton.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

SELECTION_TTL_S = 86400
CONTENT_TTL_S = 3600
METADATA_TTL_S = 900


class Cache(ABC):
    """Abstract cache interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_s: Optional[int] = None):
        """Set value in cache with optional TTL."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove one entry; True if it existed."""
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix."""
        pass

    @abstractmethod
    def clear(self):
        """Clear all cache entries."""
        pass

    @abstractmethod
    def stats(self) -> dict:
        """Get cache statistics."""
        pass


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache(Cache):
    """
    Thread-safe in-memory cache with per-entry expiry.

    Expiry is checked on the key being read, so an expired value is never
    returned. A full sweep runs every ``sweep_interval`` writes and on purge().
    """

    def __init__(
        self,
        name: str,
        ttl_s: int,
        clock: Clock = time.monotonic,
        sweep_interval: int = 256,
    ):
        """
        Initialize cache.

        Args:
            name: Label used in logs and stats
            ttl_s: Default TTL in seconds
            clock: Time source in seconds (injectable for tests)
            sweep_interval: Writes between full expiry sweeps
        """
        self.name = name
        self.default_ttl = ttl_s
        self.clock = clock
        self.sweep_interval = max(1, sweep_interval)
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._writes_since_sweep = 0
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self.clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                logger.debug(f"[{self.name}] Cache MISS: {key[:80]}")
                return None
            self.hits += 1
            logger.debug(f"[{self.name}] Cache HIT: {key[:80]}")
            return entry.value

    def set(self, key: str, value: Any, ttl_s: Optional[int] = None):
        expire = ttl_s if ttl_s is not None else self.default_ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self.clock() + expire)
            self._writes_since_sweep += 1
            if self._writes_since_sweep >= self.sweep_interval:
                self._sweep_locked()
        logger.debug(f"[{self.name}] Cache SET: {key[:80]} (TTL={expire}s)")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def purge(self) -> int:
        """Drop all expired entries now; returns how many were removed."""
        with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._writes_since_sweep = 0
        if expired:
            logger.debug(f"[{self.name}] Swept {len(expired)} expired entries")
        return len(expired)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.info(f"[{self.name}] Cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            total = self.hits + self.misses
            hit_rate = (self.hits / total * 100) if total > 0 else 0
            return {
                "backend": "memory",
                "name": self.name,
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": f"{hit_rate:.1f}%",
            }


class NoOpCache(Cache):
    """Cache that never stores anything (cache busting)."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_s: Optional[int] = None):
        pass

    def delete(self, key: str) -> bool:
        return False

    def delete_prefix(self, prefix: str) -> int:
        return 0

    def clear(self):
        pass

    def stats(self) -> dict:
        return {"backend": "noop", "entries": 0, "hits": 0, "misses": 0, "hit_rate": "0%"}


def make_namespace(owner: str, repo: str) -> str:
    """Cache scope for a repository."""
    return f"{owner}/{repo}"


def normalize_query(query: str) -> str:
    return (query or "").lower().strip()


class CacheService:
    """Selection, content and metadata caches with their key schemes."""

    def __init__(
        self,
        selection: Optional[Cache] = None,
        content: Optional[Cache] = None,
        metadata: Optional[Cache] = None,
        clock: Clock = time.monotonic,
        selection_ttl_s: int = SELECTION_TTL_S,
        content_ttl_s: int = CONTENT_TTL_S,
        metadata_ttl_s: int = METADATA_TTL_S,
        sweep_interval: int = 256,
    ):
        self.selection = selection if selection is not None else TTLCache("selection", selection_ttl_s, clock, sweep_interval)
        self.content = content if content is not None else TTLCache("content", content_ttl_s, clock, sweep_interval)
        self.metadata = metadata if metadata is not None else TTLCache("metadata", metadata_ttl_s, clock, sweep_interval)

    @staticmethod
    def selection_key(namespace: str, query: str) -> str:
        return f"{namespace}:{normalize_query(query)}"

    @staticmethod
    def content_key(namespace: str, path: str, content_hash: str) -> str:
        return f"{namespace}:{path}:{content_hash}"

    # Selection cache

    def load_selection(self, namespace: str, query: str) -> Optional[List[str]]:
        files = self.selection.get(self.selection_key(namespace, query))
        return list(files) if files is not None else None

    def store_selection(self, namespace: str, query: str, files: List[str]):
        self.selection.set(self.selection_key(namespace, query), list(files))

    # Content cache

    def load_content(self, namespace: str, path: str, content_hash: str) -> Optional[str]:
        return self.content.get(self.content_key(namespace, path, content_hash))

    def store_content(self, namespace: str, path: str, content_hash: str, content: str):
        self.content.set(self.content_key(namespace, path, content_hash), content)

    # Metadata cache

    def load_metadata(self, namespace: str) -> Optional[Any]:
        return self.metadata.get(namespace)

    def store_metadata(self, namespace: str, value: Any, ttl_s: Optional[int] = None):
        self.metadata.set(namespace, value, ttl_s)

    def clear_namespace(self, namespace: str) -> int:
        """Manual invalidation of everything cached for one repository."""
        removed = self.selection.delete_prefix(f"{namespace}:")
        removed += self.content.delete_prefix(f"{namespace}:")
        removed += int(self.metadata.delete(namespace))
        logger.info(f"Cleared {removed} cache entries for {namespace}")
        return removed

    def purge(self) -> int:
        return sum(
            cache.purge() for cache in (self.selection, self.content, self.metadata)
            if isinstance(cache, TTLCache)
        )

    def stats(self) -> dict:
        return {
            "selection": self.selection.stats(),
            "content": self.content.stats(),
            "metadata": self.metadata.stats(),
        }


def get_cache(settings, clock: Clock = time.monotonic, bust: bool = False) -> CacheService:
    """
    Factory function to create the cache service from settings.

    Args:
        settings: Configuration settings
        clock: Time source shared by all three caches
        bust: Use no-op caches (force fresh selections and reads)

    Returns:
        CacheService
    """
    if bust:
        logger.info("Cache busting enabled, using no-op caches")
        return CacheService(selection=NoOpCache(), content=NoOpCache(), metadata=NoOpCache())

    return CacheService(
        clock=clock,
        selection_ttl_s=settings.SELECTION_CACHE_TTL_S,
        content_ttl_s=settings.CONTENT_CACHE_TTL_S,
        metadata_ttl_s=settings.METADATA_CACHE_TTL_S,
        sweep_interval=settings.CACHE_SWEEP_INTERVAL,
    )
