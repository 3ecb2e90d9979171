"""
In-process cache store with TTL expiry and tag-based invalidation.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Set, Tuple

from shared.logging import get_logger


@dataclass
class CacheEntry:
    """A cached value with its lifetime and tags."""

    key: str
    value: Any
    stored_at: float
    ttl_seconds: float
    tags: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl_seconds

    def is_expired(self, now: float) -> bool:
        # Still valid at exactly stored_at + ttl
        return now > self.expires_at


class CacheStore:
    """Key to entry mapping with a tag to keys reverse index.

    All operations take a single lock, so a tag purge is never interleaved
    with a read or a write of an entry carrying that tag.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._tag_index: Dict[str, Set[str]] = {}
        self._tag_purges: Dict[str, int] = {}
        self.logger = get_logger("content.cache_store")

        self._hits = 0
        self._misses = 0
        self._expired_evictions = 0
        self._tag_invalidations = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for key, or None on miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                self._remove(key)
                self._expired_evictions += 1
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def tag_generation(self, tags: Iterable[str]) -> Tuple[Tuple[str, int], ...]:
        """Snapshot of purge counters for tags, to pass back into set()."""
        with self._lock:
            return tuple(sorted((tag, self._tag_purges.get(tag, 0)) for tag in set(tags)))

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        tags: Iterable[str] = (),
        generation: Optional[Tuple[Tuple[str, int], ...]] = None,
    ) -> bool:
        """Insert or overwrite an entry.

        When ``generation`` is given and any of its tags has been purged since
        the snapshot was taken, the write is dropped and False is returned.
        """
        tag_set = frozenset(tags)
        with self._lock:
            if generation is not None:
                for tag, count in generation:
                    if self._tag_purges.get(tag, 0) != count:
                        self.logger.debug("Dropped stale cache write", key=key, tag=tag)
                        return False

            if key in self._entries:
                self._remove(key)

            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                stored_at=self._clock(),
                ttl_seconds=ttl_seconds,
                tags=tag_set,
            )
            for tag in tag_set:
                self._tag_index.setdefault(tag, set()).add(key)
            return True

    def delete(self, key: str) -> bool:
        """Remove a single entry."""
        with self._lock:
            if key not in self._entries:
                return False
            self._remove(key)
            return True

    def invalidate_by_tag(self, tag: str) -> int:
        """Remove every entry carrying tag; returns the number removed."""
        with self._lock:
            self._tag_purges[tag] = self._tag_purges.get(tag, 0) + 1
            self._tag_invalidations += 1

            keys = list(self._tag_index.get(tag, ()))
            for key in keys:
                self._remove(key)
            self._tag_index.pop(tag, None)

        self.logger.info("Invalidated cache tag", tag=tag, removed=len(keys))
        return len(keys)

    def purge_expired(self) -> int:
        """Evict all expired entries."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._remove(key)
            self._expired_evictions += len(expired)

        if expired:
            self.logger.debug("Purged expired cache entries", removed=len(expired))
        return len(expired)

    def clear(self):
        """Drop all entries and tag indexes."""
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Counters and sizes; reading them does not touch entries."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": round(self._hits / lookups, 4) if lookups else 0.0,
                "expired_evictions": self._expired_evictions,
                "tag_invalidations": self._tag_invalidations,
                "tags": {tag: len(keys) for tag, keys in sorted(self._tag_index.items())},
                "keys": sorted(self._entries),
            }

    def _remove(self, key: str):
        # Caller holds the lock
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tag_index[tag]
