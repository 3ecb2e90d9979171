"""
Query parameter parsing for content routes.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from shared.config import SUPPORTED_LOCALES
from shared.errors import BadRequestError

from ..caching.cache_policy import DEFAULT_LIMIT


@dataclass(frozen=True)
class ContentQuery:
    """Normalised description of one content request.

    Every field except ``bypass_cache`` takes part in the cache key.
    """

    filter: Optional[Dict[str, Any]] = None
    sort: Tuple[str, ...] = ()
    fields: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    search: Optional[str] = None
    locale: Optional[str] = None
    lookup: Optional[str] = None
    bypass_cache: bool = False

    def key_params(self) -> Dict[str, Any]:
        """Parameters that identify the request for caching."""
        params = {
            "filter": self.filter,
            "sort": list(self.sort) or None,
            "fields": list(self.fields) or None,
            "limit": self.limit,
            "offset": self.offset,
            "search": self.search,
            "locale": self.locale,
            "lookup": self.lookup,
        }
        return {key: value for key, value in params.items() if value is not None}


def resolve_locale(value: Optional[str], default_locale: str) -> str:
    """Return value when supported, otherwise the default locale."""
    if value in SUPPORTED_LOCALES:
        return value
    return default_locale


def parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def _parse_int(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        parsed = int(value)
    except ValueError:
        raise BadRequestError(f"Invalid {name} parameter", details={name: value})
    if parsed < 0:
        raise BadRequestError(f"Invalid {name} parameter", details={name: value})
    return parsed


def _parse_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_filter(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        raise BadRequestError("Invalid filter parameter", code="INVALID_FILTER", details={"filter": value})
    if not isinstance(parsed, dict):
        raise BadRequestError("Filter must be a JSON object", code="INVALID_FILTER", details={"filter": value})
    return parsed


def combine_filters(*filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """AND together the non-empty filters."""
    present = [f for f in filters if f]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return {"_and": present}


def _hotel_shortcut_filter(params: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    clauses = []
    destination = params.get("destination")
    if destination:
        clauses.append({"destination": {"_eq": destination}})
    categories = params.get("categories")
    if categories:
        clauses.append({"categories": {"_contains": categories}})
    if parse_bool(params.get("featured")):
        clauses.append({"is_featured": {"_eq": True}})
    price_range = _parse_price_range(params.get("priceRange"))
    if price_range:
        clauses.append({"price_from": {"_gte": price_range[0], "_lte": price_range[1]}})
    return combine_filters(*clauses)


def _parse_number(value: str) -> float:
    number = float(value)
    return int(number) if number.is_integer() else number


def _parse_price_range(value: Optional[str]) -> Optional[Tuple[float, float]]:
    """``min,max`` into a pair of numbers."""
    if not value:
        return None
    bounds = _parse_csv(value)
    try:
        if len(bounds) != 2:
            raise ValueError(value)
        low, high = (_parse_number(bound) for bound in bounds)
    except ValueError:
        raise BadRequestError("Invalid priceRange parameter", details={"priceRange": value})
    return low, high


def parse_query_params(
    params: Mapping[str, str],
    default_locale: str,
    entity_type: Optional[str] = None,
    lookup: Optional[str] = None,
) -> ContentQuery:
    """Parse route query parameters into a ContentQuery.

    ``page`` (1-based) is converted to an offset when ``offset`` is absent,
    using the default page size if no limit is given. Malformed numbers or filter JSON raise
    BadRequestError.

    Detail lookups only honour ``fields``, the locale and ``bypassCache``;
    list parameters are not parsed so they cannot split the cache key.
    """
    locale = resolve_locale(params.get("locale") or params.get("language"), default_locale)
    bypass_cache = parse_bool(params.get("bypassCache"))

    if lookup is not None:
        return ContentQuery(
            fields=_parse_csv(params.get("fields")),
            locale=locale,
            lookup=lookup,
            bypass_cache=bypass_cache,
        )

    limit = _parse_int("limit", params.get("limit"))
    offset = _parse_int("offset", params.get("offset"))
    page = _parse_int("page", params.get("page"))

    if page is not None and offset is None:
        if page < 1:
            raise BadRequestError("Invalid page parameter", details={"page": page})
        offset = (page - 1) * (limit if limit is not None else DEFAULT_LIMIT)

    user_filter = _parse_filter(params.get("filter"))
    if entity_type == "hotels":
        user_filter = combine_filters(user_filter, _hotel_shortcut_filter(params))

    search = params.get("search") or params.get("query") or None

    return ContentQuery(
        filter=user_filter,
        sort=_parse_csv(params.get("sort")),
        fields=_parse_csv(params.get("fields")),
        limit=limit,
        offset=offset,
        search=search,
        locale=locale,
        bypass_cache=bypass_cache,
    )
