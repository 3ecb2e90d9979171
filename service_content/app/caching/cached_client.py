"""
Read-through content cache.

Combines the fetch adapter with the cache store and owns the per-entity TTL
and tag policy. Route handlers and invalidation endpoints only talk to
``CachedContentClient``.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple, TYPE_CHECKING, Union

from shared.logging import get_logger

from .cache_policy import EntityType, get_policy
from .cache_store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..domain.query_params import ContentQuery


CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
CACHE_BYPASS = "BYPASS"
CACHE_DISABLED = "DISABLED"


@dataclass(frozen=True)
class Uncacheable:
    """Fetch result that is returned to the caller but never stored.

    Used for partial records, e.g. a detail page whose embedded collection
    failed to load.
    """

    data: Any
    reason: str = "degraded"


class Fetcher(Protocol):
    async def fetch(self, entity_type: EntityType, query: "ContentQuery") -> Any: ...


def make_cache_key(entity_type: Union[EntityType, str], query: "ContentQuery") -> str:
    """Deterministic key for an entity request; ignores the bypass flag."""
    name = entity_type.value if isinstance(entity_type, EntityType) else str(entity_type)
    key_string = json.dumps(query.key_params(), sort_keys=True, separators=(",", ":"), default=str)
    return f"content:{name}:{hashlib.md5(key_string.encode()).hexdigest()}"


class CachedContentClient:
    """Cache-aside client for content entities."""

    def __init__(
        self,
        fetcher: Fetcher,
        store: Optional[CacheStore] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
        enabled: bool = True,
    ):
        self.fetcher = fetcher
        self.store = store if store is not None else CacheStore()
        self.metrics = metrics
        self.enabled = enabled
        self.logger = get_logger("content.cached_client")

    def cache_key(self, entity_type: Union[EntityType, str], query: "ContentQuery") -> str:
        return make_cache_key(_as_entity_type(entity_type), query)

    async def fetch_entity(self, entity_type: Union[EntityType, str], query: "ContentQuery") -> Any:
        """Return cached data for the request, fetching and storing on a miss."""
        data, _ = await self.fetch_entity_with_status(entity_type, query)
        return data

    async def fetch_entity_with_status(
        self,
        entity_type: Union[EntityType, str],
        query: "ContentQuery",
    ) -> Tuple[Any, str]:
        """Like fetch_entity, also returning HIT, MISS, BYPASS or DISABLED.

        Backend errors propagate unchanged and leave the store untouched.
        ``None`` results (not found) and ``Uncacheable`` results are never
        stored.
        """
        entity = _as_entity_type(entity_type)
        policy = get_policy(entity)
        label = entity.value

        if not self.enabled:
            self._count("cache_bypass_total", label)
            data, _ = _unwrap(await self.fetcher.fetch(entity, query))
            return data, CACHE_DISABLED

        key = make_cache_key(entity, query)

        if query.bypass_cache:
            status = CACHE_BYPASS
            self._count("cache_bypass_total", label)
        else:
            cached = self.store.get(key)
            if cached is not None:
                self._count("cache_hits_total", label)
                self.logger.debug("Cache hit", entity_type=label, key=key)
                return cached, CACHE_HIT
            status = CACHE_MISS
            self._count("cache_misses_total", label)

        generation = self.store.tag_generation(policy.tags)
        data, reason = _unwrap(await self.fetcher.fetch(entity, query))

        if reason is not None:
            self.logger.warning("Partial result not cached", entity_type=label, key=key, reason=reason)
        elif data is not None:
            stored = self.store.set(key, data, policy.ttl_seconds, policy.tags, generation=generation)
            self.logger.debug(
                "Cache populated" if stored else "Cache write skipped after invalidation",
                entity_type=label,
                key=key,
                ttl=policy.ttl_seconds,
            )
            self._update_size()

        return data, status

    def invalidate_tag(self, tag: str, source: str = "admin") -> int:
        """Purge every entry carrying tag."""
        removed = self.store.invalidate_by_tag(tag)
        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", tag=tag, source=source)
        self._update_size()
        return removed

    def invalidate_entity(
        self,
        entity_type: str,
        entity_id: Optional[str] = None,
        source: str = "admin",
    ) -> Dict[str, Any]:
        """Purge the canonical tag of an entity type.

        Invalidation is per collection; ``entity_id`` is recorded in logs
        only. Unknown types purge a tag of the same name, which is a no-op
        unless something was stored under it.
        """
        entity = EntityType.resolve(entity_type)
        if entity is None:
            tag = entity_type
            self.logger.warning("Unknown entity type for cache invalidation", entity_type=entity_type)
        else:
            tag = entity.value

        removed = self.invalidate_tag(tag, source=source)
        self.logger.info(
            "Cache invalidated",
            entity_type=entity_type,
            entity_id=entity_id,
            tag=tag,
            removed=removed,
            source=source,
        )
        return {"tag": tag, "removed": removed}

    def purge_expired(self) -> int:
        removed = self.store.purge_expired()
        if removed:
            self._update_size()
        return removed

    def stats(self) -> Dict[str, Any]:
        stats = self.store.stats()
        stats["enabled"] = self.enabled
        return stats

    def _count(self, metric_name: str, entity_type: str):
        if self.metrics:
            self.metrics.increment_counter(metric_name, entity_type=entity_type)

    def _update_size(self):
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(self.store))


def _unwrap(result: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(result, Uncacheable):
        return result.data, result.reason
    return result, None


def _as_entity_type(entity_type: Union[EntityType, str]) -> EntityType:
    if isinstance(entity_type, EntityType):
        return entity_type
    resolved = EntityType.resolve(entity_type)
    if resolved is None:
        raise ValueError(f"Unknown entity type: {entity_type}")
    return resolved
