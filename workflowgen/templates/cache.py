"""In-memory cache of resolved templates."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from workflowgen.templates.models import TemplateDocument, TemplateMetadata

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached template and its usage counters."""
    template: TemplateDocument
    metadata: TemplateMetadata | None = None
    access_count: int = 1
    first_loaded_at: datetime = field(default_factory=datetime.now)
    last_accessed_at: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.access_count += 1
        self.last_accessed_at = datetime.now()


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache usage."""
    entry_count: int = 0
    total_accesses: int = 0
    average_access_count: float = 0.0
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_count": self.entry_count,
            "total_accesses": self.total_accesses,
            "average_access_count": self.average_access_count,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 4),
        }


Loader = Callable[[], Awaitable[CacheEntry]]


class TemplateCache:
    """Caches templates by key with at-most-once loading per key.

    Concurrent callers asking for the same key are serialized on a per-key
    lock, so the loader of a cached key runs only once. Loader failures are
    not cached and propagate to every waiting caller that retries the load.
    A key's lock only lives while some caller is loading or waiting on it.

    Usage:
        cache = TemplateCache()
        entry = await cache.get_or_load("workflow:ci-basic", load_fn)
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}
        self._hits = 0
        self._misses = 0

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get_or_load(self, key: str, loader: Loader) -> CacheEntry:
        """Return the cached entry for ``key``, loading it on a miss."""
        if not self.enabled:
            return await loader()

        entry = self._entries.get(key)
        if entry is not None:
            entry.touch()
            self._hits += 1
            return entry

        lock = self._lock_for(key)
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have loaded it while we waited
                entry = self._entries.get(key)
                if entry is not None:
                    entry.touch()
                    self._hits += 1
                    return entry

                self._misses += 1
                entry = await loader()
                self._entries[key] = entry
                logger.debug(f"Cached template {key}")
                return entry
        finally:
            self._release(key, lock)

    def _release(self, key: str, lock: asyncio.Lock) -> None:
        remaining = self._waiting.get(key, 1) - 1
        if remaining > 0:
            self._waiting[key] = remaining
            return
        self._waiting.pop(key, None)
        if self._locks.get(key) is lock:
            del self._locks[key]

    def get(self, key: str) -> CacheEntry | None:
        """Peek at an entry without counting an access."""
        return self._entries.get(key)

    def stats(self) -> CacheStats:
        entries = list(self._entries.values())
        total = sum(e.access_count for e in entries)
        return CacheStats(
            entry_count=len(entries),
            total_accesses=total,
            average_access_count=total / len(entries) if entries else 0.0,
            hits=self._hits,
            misses=self._misses,
        )

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.debug("Template cache cleared")
