"""
Entity-aware fetching on top of the Directus client.

Applies per-entity defaults (fields, sort, limit, published-only filter),
limits translations to the request locale, embeds related records on detail
lookups and normalises records for the routes. A detail record whose embed
failed is wrapped in ``Uncacheable`` so it is served but not stored.
"""

from typing import Any, Dict, List, Optional, Union

from shared.errors import ContentGatewayException
from shared.logging import get_logger

from ..caching.cache_policy import (
    DEFAULT_LIMIT,
    PUBLISHED_FILTER,
    EntityPolicy,
    EntityType,
    get_policy,
)
from ..caching.cached_client import Uncacheable
from ..domain.localization import localize_record, localize_records, translations_deep
from ..domain.query_params import ContentQuery, combine_filters
from .directus_client import DirectusClient

ContentResult = Union[List[Dict[str, Any]], Dict[str, Any], Uncacheable, None]

# Detail embeds: parent entity -> (child entity, foreign key on child)
EMBEDDED_RELATIONS = {
    EntityType.HOTELS: (EntityType.ROOMS, "hotel"),
    EntityType.DESTINATIONS: (EntityType.HOTELS, "destination"),
}


class ContentFetcher:
    """Fetch adapter used by the cached client on misses."""

    def __init__(self, client: DirectusClient, assets_url: str):
        self.client = client
        self.assets_url = assets_url.rstrip("/")
        self.logger = get_logger("content.fetcher")

    async def fetch(self, entity_type: EntityType, query: ContentQuery) -> ContentResult:
        """List when ``query.lookup`` is unset, otherwise a single record or None."""
        if query.lookup is not None:
            return await self.fetch_one(entity_type, query)
        return await self.fetch_list(entity_type, query)

    async def fetch_list(self, entity_type: EntityType, query: ContentQuery) -> Union[List[Dict[str, Any]], Dict[str, str]]:
        policy = get_policy(entity_type)
        locale = query.locale

        if entity_type is EntityType.TRANSLATIONS:
            items = await self.client.get_items(
                policy.collection,
                filter=combine_filters({"language": {"_eq": locale}}, query.filter),
                fields=query.fields or policy.list_fields,
                sort=query.sort,
                limit=query.limit if query.limit is not None else -1,
                offset=query.offset,
                search=query.search,
            )
            return {item["key"]: item.get("value") for item in items if item.get("key")}

        items = await self.client.get_items(
            policy.collection,
            filter=combine_filters(self._default_filter(policy), query.filter),
            fields=query.fields or policy.list_fields,
            sort=query.sort or policy.sort,
            limit=query.limit if query.limit is not None else DEFAULT_LIMIT,
            offset=query.offset,
            search=query.search,
            deep=translations_deep(locale) if locale else None,
        )
        return localize_records(items, locale, self.assets_url) if locale else items

    async def fetch_one(
        self,
        entity_type: EntityType,
        query: ContentQuery,
    ) -> Union[Dict[str, Any], Uncacheable, None]:
        """Single record or None; ``Uncacheable`` when an embed failed."""
        policy = get_policy(entity_type)
        locale = query.locale
        lookup_filter = {policy.lookup_field: {"_eq": query.lookup}}

        if entity_type is EntityType.TRANSLATIONS:
            items = await self.client.get_items(
                policy.collection,
                filter=combine_filters(lookup_filter, {"language": {"_eq": locale}}),
                fields=query.fields or policy.detail_fields,
                limit=1,
            )
            return items[0] if items else None

        items = await self.client.get_items(
            policy.collection,
            filter=combine_filters(lookup_filter, self._default_filter(policy)),
            fields=query.fields or policy.detail_fields,
            limit=1,
            deep=translations_deep(locale) if locale else None,
        )
        if not items:
            self.logger.info("Content item not found", entity_type=entity_type.value, lookup=query.lookup)
            return None

        record = items[0]
        embed_failed = False
        if entity_type in EMBEDDED_RELATIONS:
            child_type, foreign_key = EMBEDDED_RELATIONS[entity_type]
            record = dict(record)
            children = await self._fetch_embedded(child_type, foreign_key, record.get("id"), locale)
            embed_failed = children is None
            record[child_type.value] = children or []

        if locale:
            record = localize_record(record, locale, self.assets_url)
        if embed_failed:
            return Uncacheable(record, reason="embed_failed")
        return record

    async def _fetch_embedded(
        self,
        child_type: EntityType,
        foreign_key: str,
        parent_id: Any,
        locale: Optional[str],
    ) -> Optional[List[Dict[str, Any]]]:
        """Published children of a parent; None when the backend call failed."""
        if parent_id is None:
            return []

        policy = get_policy(child_type)
        try:
            items = await self.client.get_items(
                policy.collection,
                filter=combine_filters({foreign_key: {"_eq": parent_id}}, self._default_filter(policy)),
                fields=policy.list_fields,
                sort=policy.sort,
                limit=DEFAULT_LIMIT,
                deep=translations_deep(locale) if locale else None,
            )
        except ContentGatewayException as exc:
            self.logger.warning(
                "Embedded content fetch failed, using empty list",
                entity_type=child_type.value,
                parent_id=parent_id,
                error=str(exc),
            )
            return None

        return localize_records(items, locale, self.assets_url) if locale else items

    @staticmethod
    def _default_filter(policy: EntityPolicy) -> Optional[Dict[str, Any]]:
        return PUBLISHED_FILTER if policy.published_only else None
