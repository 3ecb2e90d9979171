"""
Mock Directus server providing the item API used by the content gateway.
"""

import copy
import json
from typing import Any, Dict, List, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger
from shared.test_helpers import TestDataFactory


def _forbidden() -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={"errors": [{"message": "You don't have permission to access this.", "extensions": {"code": "FORBIDDEN"}}]},
    )


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"errors": [{"message": message, "extensions": {"code": "INVALID_QUERY"}}]},
    )


def _field_value(item: Dict[str, Any], path: str) -> Any:
    value: Any = item
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def matches_filter(item: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    """Evaluate a Directus filter object against an item."""
    for key, condition in filter.items():
        if key == "_and":
            if not all(matches_filter(item, sub) for sub in condition):
                return False
            continue
        if key == "_or":
            if not any(matches_filter(item, sub) for sub in condition):
                return False
            continue

        value = _field_value(item, key)
        if isinstance(value, dict) and "id" in value:
            value = value["id"]

        if not isinstance(condition, dict):
            return False
        for operator, expected in condition.items():
            if operator == "_eq" and value != expected:
                return False
            if operator == "_neq" and value == expected:
                return False
            if operator == "_in" and value not in expected:
                return False
            if operator == "_nin" and value in expected:
                return False
            if operator == "_null" and (value is None) != bool(expected):
                return False
            if operator == "_contains":
                if value is None or expected not in value:
                    return False
            if operator not in ("_eq", "_neq", "_in", "_nin", "_null", "_contains") and isinstance(expected, dict):
                # Nested relational filter
                if not isinstance(value, dict) or not matches_filter(value, {operator: expected}):
                    return False
    return True


def _sort_items(items: List[Dict[str, Any]], sort: List[str]) -> List[Dict[str, Any]]:
    for field in reversed(sort):
        descending = field.startswith("-")
        name = field.lstrip("-")
        items = sorted(
            items,
            key=lambda item: (_field_value(item, name) is None, _field_value(item, name) or ""),
            reverse=descending,
        )
    return items


def _project(item: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    if not fields or "*" in fields:
        return item
    roots = {field.split(".")[0] for field in fields}
    return {key: value for key, value in item.items() if key in roots}


def _apply_deep(item: Dict[str, Any], deep: Dict[str, Any]) -> Dict[str, Any]:
    for relation, options in deep.items():
        nested_filter = options.get("_filter") if isinstance(options, dict) else None
        related = item.get(relation)
        if nested_filter and isinstance(related, list):
            item[relation] = [r for r in related if isinstance(r, dict) and matches_filter(r, nested_filter)]
    return item


class MockDirectusServer:
    """Mock Directus server implementation."""

    def __init__(
        self,
        token: str = "mock-directus-token",
        collections: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        webhook_url: Optional[str] = None,
        webhook_secret: str = "development_secret",
        webhook_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.logger = get_logger("mock.directus")
        self.app = FastAPI(title="Mock Directus", version="1.0.0")

        self.collections = collections if collections is not None else TestDataFactory.create_test_collections()
        self.webhook_url = webhook_url
        self.webhook_secret = webhook_secret
        self.webhook_transport = webhook_transport

        self.requests: List[Dict[str, Any]] = []
        self.fail_with: Optional[int] = None
        # collection -> status returned for reads of that collection only
        self.failing_collections: Dict[str, int] = {}

        self._setup_routes()

    def _authorized(self, request: Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.token}"

    def request_count(self, collection: Optional[str] = None) -> int:
        """Number of item reads served, optionally for one collection."""
        if collection is None:
            return len(self.requests)
        return sum(1 for r in self.requests if r["collection"] == collection)

    def _setup_routes(self):
        """Set up mock Directus routes."""

        @self.app.get("/server/health")
        async def health():
            """Health endpoint."""
            return {"status": "ok"}

        @self.app.get("/items/{collection}")
        async def read_items(collection: str, request: Request):
            """Read items with filter, sort, fields, limit, offset and deep."""
            if not self._authorized(request):
                return _forbidden()
            if collection not in self.collections:
                return _forbidden()

            params = request.query_params
            self.requests.append({"collection": collection, "params": dict(params)})

            status = self.fail_with or self.failing_collections.get(collection)
            if status is not None:
                return JSONResponse(
                    status_code=status,
                    content={"errors": [{"message": "Service unavailable"}]},
                )

            try:
                filter = json.loads(params["filter"]) if params.get("filter") else None
                deep = json.loads(params["deep"]) if params.get("deep") else None
                limit = int(params.get("limit", "100"))
                offset = int(params.get("offset", "0"))
            except ValueError as exc:
                return _bad_request(str(exc))

            items = copy.deepcopy(self.collections[collection])
            if filter:
                items = [item for item in items if matches_filter(item, filter)]

            search = params.get("search")
            if search:
                needle = search.lower()
                items = [
                    item for item in items
                    if any(isinstance(v, str) and needle in v.lower() for v in item.values())
                ]

            sort = [s for s in params.get("sort", "").split(",") if s]
            if sort:
                items = _sort_items(items, sort)

            items = items[offset:] if limit < 0 else items[offset:offset + limit]
            if deep:
                items = [_apply_deep(item, deep) for item in items]

            fields = [f for f in params.get("fields", "").split(",") if f]
            return {"data": [_project(item, fields) for item in items]}

        @self.app.patch("/items/{collection}/{item_id}")
        async def update_item(collection: str, item_id: str, request: Request):
            """Update an item and notify the webhook receiver."""
            if not self._authorized(request):
                return _forbidden()

            items = self.collections.get(collection, [])
            item = next((i for i in items if str(i.get("id")) == item_id), None)
            if item is None:
                return _forbidden()

            changes = await request.json()
            item.update(changes)
            self.logger.info("Mock item updated", collection=collection, item_id=item_id)

            await self._send_webhook({
                "event": "items.update",
                "collection": collection,
                "keys": [item_id],
                "payload": changes,
            })
            return {"data": item}

    async def _send_webhook(self, payload: Dict[str, Any]):
        if not self.webhook_url:
            return
        async with httpx.AsyncClient(transport=self.webhook_transport, timeout=5.0) as client:
            response = await client.post(
                self.webhook_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.webhook_secret}"},
            )
        self.logger.info("Mock webhook delivered", status_code=response.status_code, collection=payload["collection"])


def create_app():
    """Create mock Directus application."""
    server = MockDirectusServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8055)
