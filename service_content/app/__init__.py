"""
Content gateway service package for the boutique-hotel site.

The gateway fronts the headless CMS and serves hotels, destinations,
categories, pages, translations and rooms as JSON, with:
- Read-through caching: in-process store with TTLs and tag invalidation
- Invalidation triggers: CMS webhooks and an authenticated admin endpoint

Structure:
- app.main: FastAPI app, routes, and lifecycle wiring.
- app.adapters: Directus HTTP client and entity-aware fetcher.
- app.caching: Cache store, entity policies and the cached client.
- app.domain: Query parsing, localisation and webhook helpers.
"""
