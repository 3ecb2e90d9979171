"""
Per-entity cache policy: TTLs, tags and backend query defaults.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class EntityType(str, Enum):
    """Content entity types served by the gateway."""

    HOTELS = "hotels"
    DESTINATIONS = "destinations"
    CATEGORIES = "categories"
    PAGES = "pages"
    TRANSLATIONS = "translations"
    ROOMS = "rooms"

    @classmethod
    def resolve(cls, name: Optional[str]) -> Optional["EntityType"]:
        """Resolve a plural or singular, case-insensitive name; None if unknown."""
        if not name:
            return None
        normalized = name.strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            pass
        return _SINGULAR_ALIASES.get(normalized)

    @property
    def singular(self) -> str:
        return next(alias for alias, entity in _SINGULAR_ALIASES.items() if entity is self)


_SINGULAR_ALIASES = {
    "hotel": EntityType.HOTELS,
    "destination": EntityType.DESTINATIONS,
    "category": EntityType.CATEGORIES,
    "page": EntityType.PAGES,
    "translation": EntityType.TRANSLATIONS,
    "room": EntityType.ROOMS,
}


# Seconds
REVALIDATE_TIMES: Dict[EntityType, int] = {
    EntityType.HOTELS: 300,
    EntityType.DESTINATIONS: 600,
    EntityType.CATEGORIES: 1800,
    EntityType.PAGES: 3600,
    EntityType.TRANSLATIONS: 86400,
    EntityType.ROOMS: 300,
}

PUBLISHED_FILTER: Dict[str, Any] = {"status": {"_eq": "Published"}}
DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class EntityPolicy:
    """How an entity type is fetched and cached."""

    entity_type: EntityType
    ttl_seconds: int
    tags: FrozenSet[str]
    lookup_field: str
    list_fields: Tuple[str, ...]
    detail_fields: Tuple[str, ...]
    sort: Tuple[str, ...] = ()
    published_only: bool = False

    @property
    def collection(self) -> str:
        return self.entity_type.value


_BASE_HOTEL_FIELDS = ("*", "main_image.*", "translations.*", "destination.*", "destination.translations.*")
_BASE_DESTINATION_FIELDS = ("*", "main_image.*", "translations.*")

ENTITY_POLICIES: Dict[EntityType, EntityPolicy] = {
    EntityType.HOTELS: EntityPolicy(
        entity_type=EntityType.HOTELS,
        ttl_seconds=REVALIDATE_TIMES[EntityType.HOTELS],
        # Hotel detail embeds rooms; list and detail expand destination.*
        tags=frozenset({"hotels", "rooms", "destinations"}),
        lookup_field="slug",
        list_fields=_BASE_HOTEL_FIELDS,
        detail_fields=_BASE_HOTEL_FIELDS + ("gallery.image.*",),
        sort=("-date_created",),
        published_only=True,
    ),
    EntityType.DESTINATIONS: EntityPolicy(
        entity_type=EntityType.DESTINATIONS,
        ttl_seconds=REVALIDATE_TIMES[EntityType.DESTINATIONS],
        # Destination detail embeds hotels
        tags=frozenset({"destinations", "hotels"}),
        lookup_field="slug",
        list_fields=_BASE_DESTINATION_FIELDS,
        detail_fields=_BASE_DESTINATION_FIELDS + (
            "gallery.image.*",
            "highlights.image.*",
            "activities.image.*",
        ),
        sort=("-date_created",),
        published_only=True,
    ),
    EntityType.CATEGORIES: EntityPolicy(
        entity_type=EntityType.CATEGORIES,
        ttl_seconds=REVALIDATE_TIMES[EntityType.CATEGORIES],
        tags=frozenset({"categories"}),
        lookup_field="slug",
        list_fields=("*", "image.*", "translations.*"),
        detail_fields=("*", "image.*", "translations.*"),
        sort=("sort",),
    ),
    EntityType.PAGES: EntityPolicy(
        entity_type=EntityType.PAGES,
        ttl_seconds=REVALIDATE_TIMES[EntityType.PAGES],
        tags=frozenset({"pages"}),
        lookup_field="slug",
        list_fields=("*", "featured_image.*", "translations.*"),
        detail_fields=("*", "featured_image.*", "translations.*"),
        sort=("sort",),
        published_only=True,
    ),
    EntityType.TRANSLATIONS: EntityPolicy(
        entity_type=EntityType.TRANSLATIONS,
        ttl_seconds=REVALIDATE_TIMES[EntityType.TRANSLATIONS],
        tags=frozenset({"translations"}),
        lookup_field="key",
        list_fields=("key", "value"),
        detail_fields=("key", "value"),
    ),
    EntityType.ROOMS: EntityPolicy(
        entity_type=EntityType.ROOMS,
        ttl_seconds=REVALIDATE_TIMES[EntityType.ROOMS],
        # Room edits surface through hotel pages too
        tags=frozenset({"rooms", "hotels"}),
        lookup_field="id",
        list_fields=("*", "main_image.*", "gallery.image.*", "translations.*"),
        detail_fields=("*", "main_image.*", "gallery.image.*", "translations.*"),
        published_only=True,
    ),
}


def get_policy(entity_type: EntityType) -> EntityPolicy:
    """Policy for an entity type."""
    return ENTITY_POLICIES[entity_type]


def cache_control_header(ttl_seconds: int, stale_while_revalidate: int, disabled: bool = False) -> str:
    """Cache-Control value for a successful content response."""
    if disabled:
        return "no-store, max-age=0"
    return (
        f"public, max-age={ttl_seconds}, s-maxage={ttl_seconds}, "
        f"stale-while-revalidate={stale_while_revalidate}"
    )
