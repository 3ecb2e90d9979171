"""
Content caching package.

Entries live in process memory and expire by TTL; webhooks and the admin
endpoint purge them by tag. Only ``CachedContentClient`` writes to the store.
"""

from .cache_policy import ENTITY_POLICIES, REVALIDATE_TIMES, EntityPolicy, EntityType
from .cache_store import CacheEntry, CacheStore
from .cached_client import CachedContentClient, Uncacheable, make_cache_key

__all__ = [
    "CacheEntry",
    "CacheStore",
    "CachedContentClient",
    "ENTITY_POLICIES",
    "EntityPolicy",
    "EntityType",
    "REVALIDATE_TIMES",
    "Uncacheable",
    "make_cache_key",
]
