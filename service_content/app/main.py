"""
Content gateway service for the boutique-hotel site.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import BadRequestError, NotFoundError
from shared.logging import set_locale_context

from .adapters.content_fetcher import ContentFetcher
from .adapters.directus_client import DirectusClient
from .caching.cache_policy import DEFAULT_LIMIT, EntityType, cache_control_header, get_policy
from .caching.cache_store import CacheStore
from .caching.cached_client import CachedContentClient, Fetcher
from .domain.query_params import parse_query_params
from .domain.webhooks import bearer_token, parse_webhook_payload, verify_token

NO_STORE = "no-store, max-age=0"


class ContentGatewayService(BaseService):
    """Content gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        directus_client: Optional[DirectusClient] = None,
        fetcher: Optional[Fetcher] = None,
        cache_store: Optional[CacheStore] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__("content", 8000, config=config)

        self.directus_client = directus_client or DirectusClient(
            self.config.directus_url,
            self.config.directus_token,
            timeout=self.config.directus_timeout_seconds,
            metrics=self.metrics,
        )
        self.fetcher = fetcher or ContentFetcher(self.directus_client, self.config.resolved_assets_url)

        if cache_store is None:
            cache_store = CacheStore(clock=clock) if clock else CacheStore()
        self.cache_store = cache_store
        self.content_client = CachedContentClient(
            self.fetcher,
            self.cache_store,
            metrics=self.metrics,
            enabled=not self.config.cache_disabled,
        )
        self._sweep_task: Optional[asyncio.Task] = None

        @self.app.on_event("startup")
        async def _startup():
            interval = self.config.cache_sweep_interval_seconds
            if interval and interval > 0 and self.content_client.enabled:
                self._sweep_task = asyncio.create_task(self._sweep_loop(interval))
            self.logger.info(
                "Content gateway started",
                directus_url=self.config.directus_url,
                cache_enabled=self.content_client.enabled,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self._sweep_task:
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
                self._sweep_task = None
            self.cache_store.clear()

        self._setup_content_routes()
        self._setup_revalidate_routes()
        self._setup_webhook_routes()

    async def _sweep_loop(self, interval: float):
        """Periodically evict expired entries."""
        while True:
            await asyncio.sleep(interval)
            removed = self.content_client.purge_expired()
            if removed:
                self.logger.debug("Cache sweep completed", removed=removed)

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "cache": "enabled" if self.content_client.enabled else "disabled",
            "directus": self.config.directus_url,
        }

    def _cache_headers(self, entity_type: EntityType, status: str) -> Dict[str, str]:
        disabled = not self.content_client.enabled
        return {
            "Cache-Control": cache_control_header(
                get_policy(entity_type).ttl_seconds,
                self.config.cache_stale_while_revalidate,
                disabled=disabled,
            ),
            "X-Cache": status,
        }

    def _setup_content_routes(self):
        """Set up list and detail routes for every entity type."""
        for entity_type in EntityType:
            self._add_entity_routes(entity_type)

    def _add_entity_routes(self, entity_type: EntityType):
        name = entity_type.value
        label = entity_type.singular.title()

        async def list_entities(request: Request):
            """List published items of the collection."""
            query = parse_query_params(
                request.query_params,
                self.config.default_locale,
                entity_type=name,
            )
            set_locale_context(query.locale)

            data, status = await self.content_client.fetch_entity_with_status(entity_type, query)
            meta = {
                "total": len(data) if data is not None else 0,
                "limit": query.limit if query.limit is not None else DEFAULT_LIMIT,
                "offset": query.offset or 0,
                "locale": query.locale,
            }
            return JSONResponse(
                content={"data": data, "meta": meta},
                headers=self._cache_headers(entity_type, status),
            )

        async def get_entity(id_or_slug: str, request: Request):
            """Fetch one item by its lookup field."""
            query = parse_query_params(
                request.query_params,
                self.config.default_locale,
                lookup=id_or_slug,
            )
            set_locale_context(query.locale)

            data, status = await self.content_client.fetch_entity_with_status(entity_type, query)
            if data is None:
                raise NotFoundError(
                    f"{label} not found",
                    details={"entity_type": name, "id_or_slug": id_or_slug},
                )
            return JSONResponse(
                content={"data": data, "meta": {"locale": query.locale}},
                headers=self._cache_headers(entity_type, status),
            )

        list_entities.__name__ = f"list_{name}"
        get_entity.__name__ = f"get_{name}_item"
        self.app.add_api_route(f"/api/{name}", list_entities, methods=["GET"])
        self.app.add_api_route(f"/api/{name}/{{id_or_slug}}", get_entity, methods=["GET"])

    def _setup_revalidate_routes(self):
        """Set up admin cache routes."""

        @self.app.get("/api/revalidate")
        async def cache_stats(request: Request):
            """Cache statistics for operators."""
            verify_token(request.query_params.get("token"), self.config.revalidate_secret)
            return JSONResponse(
                content={"data": self.content_client.stats(), "meta": {"cache": {"enabled": False}}},
                headers={"Cache-Control": NO_STORE},
            )

        @self.app.post("/api/revalidate")
        async def revalidate(request: Request):
            """Purge the cache of one entity type."""
            verify_token(request.query_params.get("token"), self.config.revalidate_secret)

            body = await _json_body(request)
            entity_type = body.get("entityType") if isinstance(body, dict) else None
            if not entity_type or not isinstance(entity_type, str):
                raise BadRequestError("Entity type is required", code="MISSING_PARAMETER")
            entity_id = body.get("entityId")

            result = self.content_client.invalidate_entity(
                entity_type,
                str(entity_id) if entity_id is not None else None,
                source="admin",
            )
            return JSONResponse(
                content={
                    "data": {
                        "message": _invalidation_message(entity_type, entity_id),
                        "tag": result["tag"],
                        "removed": result["removed"],
                        "timestamp": _now_iso(),
                    },
                    "meta": {"cache": {"enabled": False}},
                },
                headers={"Cache-Control": NO_STORE},
            )

    def _setup_webhook_routes(self):
        """Set up the CMS webhook receiver."""

        @self.app.post("/api/webhooks/directus")
        async def directus_webhook(request: Request):
            """Invalidate cached content after a CMS mutation."""
            verify_token(bearer_token(request.headers.get("Authorization")), self.config.webhook_secret)

            payload = parse_webhook_payload(await _json_body(request))
            entity_type = payload.entity_type()
            entity_id = payload.entity_id()

            result = self.content_client.invalidate_entity(entity_type, entity_id, source="webhook")
            self.logger.info(
                "Webhook processed",
                webhook_event=payload.event,
                collection=payload.collection,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            return JSONResponse(
                content={
                    "data": {
                        "message": _invalidation_message(entity_type, entity_id),
                        "event": payload.event,
                        "collection": payload.collection,
                        "tag": result["tag"],
                        "removed": result["removed"],
                        "timestamp": _now_iso(),
                    }
                },
                headers={"Cache-Control": NO_STORE},
            )


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw or b"null")
    except ValueError:
        raise BadRequestError("Request body must be valid JSON", code="INVALID_JSON")


def _invalidation_message(entity_type: str, entity_id: Optional[Any]) -> str:
    suffix = f" ({entity_id})" if entity_id else ""
    return f"Cache invalidated for {entity_type}{suffix}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(**kwargs):
    """Create FastAPI application."""
    config = kwargs.pop("config", None) or get_config("content", 8000)
    service = ContentGatewayService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = ContentGatewayService()
    service.run()
