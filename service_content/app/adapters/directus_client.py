"""
Directus item API client for the content gateway.
"""

import json
import time
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

import httpx

from shared.errors import UpstreamUnavailableError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# One retry on transport failures, fixed short delay
TRANSPORT_RETRY = RetryConfig(max_attempts=2, delay=0.2)


def encode_item_params(
    filter: Optional[Dict[str, Any]] = None,
    sort: Iterable[str] = (),
    fields: Iterable[str] = (),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    search: Optional[str] = None,
    deep: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """Encode item query options the way the Directus REST API expects."""
    params: Dict[str, str] = {}
    if filter:
        params["filter"] = json.dumps(filter, separators=(",", ":"))
    sort = list(sort)
    if sort:
        params["sort"] = ",".join(sort)
    fields = list(fields)
    if fields:
        params["fields"] = ",".join(fields)
    if limit is not None:
        params["limit"] = str(limit)
    if offset is not None:
        params["offset"] = str(offset)
    if search:
        params["search"] = search
    if deep:
        params["deep"] = json.dumps(deep, separators=(",", ":"))
    return params


class DirectusClient:
    """Thin async client for ``GET /items/<collection>``."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout: float = 10.0,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.metrics = metrics
        self._transport = transport
        self.logger = get_logger("content.directus_client")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def get_items(self, collection: str, **options) -> List[Dict[str, Any]]:
        """Fetch items of a collection; options are passed to encode_item_params."""
        data = await self._request(collection, encode_item_params(**options))
        if data is None:
            return []
        if isinstance(data, list):
            return data
        return [data]

    async def _request(self, collection: str, params: Dict[str, str]) -> Any:
        try:
            return await self._send(collection, params)
        except RetryError as exc:
            last = exc.last_exception
            self._record(collection, "transport_error")
            raise UpstreamUnavailableError(
                service="directus",
                message=f"{type(last).__name__}: {last}",
                details={"collection": collection, "attempts": exc.attempts},
            ) from last

    @retry_on_exception((httpx.TransportError,), config=TRANSPORT_RETRY)
    async def _send(self, collection: str, params: Dict[str, str]) -> Any:
        url = f"{self.base_url}/items/{collection}"
        start = time.time()

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url, params=params, headers=self._headers())

        duration = time.time() - start
        if self.metrics:
            self.metrics.observe_histogram(
                "upstream_request_duration_seconds", duration, collection=collection
            )

        if response.is_success:
            self._record(collection, str(response.status_code))
            self.logger.debug(
                "Content backend request succeeded",
                collection=collection,
                params=params,
                duration_ms=round(duration * 1000, 2),
            )
            try:
                body = response.json()
            except ValueError as exc:
                raise UpstreamUnavailableError(
                    service="directus",
                    message="Malformed JSON from content backend",
                    upstream_status=response.status_code,
                    details={"collection": collection},
                ) from exc
            return body.get("data") if isinstance(body, dict) else body

        self._record(collection, str(response.status_code))
        message = _error_message(response)
        self.logger.error(
            "Content backend request failed",
            collection=collection,
            params=params,
            status_code=response.status_code,
            error=message,
        )
        raise UpstreamUnavailableError(
            service="directus",
            message=message,
            upstream_status=response.status_code,
            details={"collection": collection},
        )

    def _record(self, collection: str, status: str):
        if self.metrics:
            self.metrics.increment_counter("upstream_requests_total", collection=collection, status=status)


def _error_message(response: httpx.Response) -> str:
    """First error message from a Directus error envelope, else the reason."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return str(errors[0].get("message", response.reason_phrase))
    return response.reason_phrase or f"HTTP {response.status_code}"
