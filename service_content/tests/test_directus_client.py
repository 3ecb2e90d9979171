"""
Unit tests for the Directus client and the content fetcher.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_content.app.adapters.content_fetcher import ContentFetcher
from service_content.app.adapters.directus_client import DirectusClient, encode_item_params
from service_content.app.caching.cache_policy import EntityType
from service_content.app.caching.cached_client import Uncacheable
from service_content.app.domain.query_params import ContentQuery
from shared.errors import UpstreamUnavailableError

ASSETS = "https://cms.example.com/assets"


class RecordingTransport:
    """Builds an httpx.MockTransport and keeps the requests it saw."""

    def __init__(self, responder):
        self.requests = []
        self._responder = responder
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def params(self, index: int = -1):
        return dict(self.requests[index].url.params)


def ok(data):
    return lambda request: httpx.Response(200, json={"data": data})


class TestEncodeItemParams:
    """Test cases for query encoding."""

    def test_encodes_all_options(self):
        params = encode_item_params(
            filter={"status": {"_eq": "Published"}},
            sort=["-date_created", "name"],
            fields=["*", "translations.*"],
            limit=10,
            offset=20,
            search="spa",
            deep={"translations": {"_filter": {"languages_code": {"_eq": "en-US"}}}},
        )

        assert json.loads(params["filter"]) == {"status": {"_eq": "Published"}}
        assert params["sort"] == "-date_created,name"
        assert params["fields"] == "*,translations.*"
        assert params["limit"] == "10"
        assert params["offset"] == "20"
        assert params["search"] == "spa"
        assert json.loads(params["deep"])["translations"]["_filter"]["languages_code"]["_eq"] == "en-US"

    def test_omits_empty_options(self):
        assert encode_item_params() == {}


class TestDirectusClient:
    """Test cases for DirectusClient."""

    @pytest.mark.asyncio
    async def test_get_items_sends_bearer_token_and_parses_envelope(self):
        recorder = RecordingTransport(ok([{"id": "h1"}]))
        client = DirectusClient("https://cms.example.com/", "secret-token", transport=recorder.transport)

        items = await client.get_items("hotels", limit=5)

        assert items == [{"id": "h1"}]
        request = recorder.requests[0]
        assert request.url.path == "/items/hotels"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert recorder.params()["limit"] == "5"

    @pytest.mark.asyncio
    async def test_non_success_status_raises_upstream_error(self):
        recorder = RecordingTransport(
            lambda request: httpx.Response(503, json={"errors": [{"message": "Maintenance"}]})
        )
        client = DirectusClient("https://cms.example.com", transport=recorder.transport)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.get_items("hotels")

        assert exc_info.value.upstream_status == 503
        assert exc_info.value.upstream_message == "Maintenance"
        # Status errors are not retried
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_retried_once(self):
        calls = {"count": 0}

        def flaky(request):
            calls["count"] += 1
            if calls["count"] == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"data": [{"id": "p1"}]})

        client = DirectusClient("https://cms.example.com", transport=httpx.MockTransport(flaky))

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            items = await client.get_items("pages")

        assert items == [{"id": "p1"}]
        assert calls["count"] == 2
        sleep.assert_awaited_once_with(0.2)

    @pytest.mark.asyncio
    async def test_transport_error_after_retry_raises_upstream_error(self):
        calls = {"count": 0}

        def down(request):
            calls["count"] += 1
            raise httpx.ReadTimeout("timed out", request=request)

        client = DirectusClient("https://cms.example.com", transport=httpx.MockTransport(down))

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await client.get_items("pages")

        assert calls["count"] == 2
        assert exc_info.value.upstream_status is None
        assert "ReadTimeout" in exc_info.value.upstream_message

    @pytest.mark.asyncio
    async def test_single_object_data_is_wrapped_in_list(self):
        recorder = RecordingTransport(ok({"id": "h1"}))
        client = DirectusClient("https://cms.example.com", transport=recorder.transport)

        assert await client.get_items("hotels") == [{"id": "h1"}]


class TestContentFetcher:
    """Test cases for ContentFetcher."""

    def make_fetcher(self, responder):
        recorder = RecordingTransport(responder)
        client = DirectusClient("https://cms.example.com", "t", transport=recorder.transport)
        return ContentFetcher(client, ASSETS), recorder

    @pytest.mark.asyncio
    async def test_hotel_list_applies_defaults(self):
        fetcher, recorder = self.make_fetcher(ok([]))

        await fetcher.fetch(EntityType.HOTELS, ContentQuery(locale="en-US"))

        params = recorder.params()
        assert json.loads(params["filter"]) == {"status": {"_eq": "Published"}}
        assert params["sort"] == "-date_created"
        assert params["limit"] == "100"
        assert "destination.*" in params["fields"].split(",")
        assert json.loads(params["deep"]) == {
            "translations": {"_filter": {"languages_code": {"_eq": "en-US"}}}
        }

    @pytest.mark.asyncio
    async def test_caller_filter_combined_with_published_filter(self):
        fetcher, recorder = self.make_fetcher(ok([]))

        await fetcher.fetch(
            EntityType.HOTELS,
            ContentQuery(locale="de-DE", filter={"is_featured": {"_eq": True}}, sort=("name",), limit=3),
        )

        params = recorder.params()
        assert json.loads(params["filter"]) == {
            "_and": [{"status": {"_eq": "Published"}}, {"is_featured": {"_eq": True}}]
        }
        assert params["sort"] == "name"
        assert params["limit"] == "3"

    @pytest.mark.asyncio
    async def test_categories_have_no_published_filter(self):
        fetcher, recorder = self.make_fetcher(ok([]))

        await fetcher.fetch(EntityType.CATEGORIES, ContentQuery(locale="de-DE"))

        params = recorder.params()
        assert "filter" not in params
        assert params["sort"] == "sort"

    @pytest.mark.asyncio
    async def test_list_records_are_localized(self):
        fetcher, _ = self.make_fetcher(ok([
            {
                "id": "h1",
                "name": "Alpine Lodge",
                "main_image": "file-1",
                "translations": [{"id": 9, "languages_code": "de-DE", "name": "Alpenhütte"}],
            }
        ]))

        records = await fetcher.fetch(EntityType.HOTELS, ContentQuery(locale="de-DE"))

        assert records[0]["name"] == "Alpenhütte"
        assert records[0]["id"] == "h1"
        assert records[0]["main_image_url"] == f"{ASSETS}/file-1?quality=80&format=webp&fit=cover"

    @pytest.mark.asyncio
    async def test_translations_list_is_key_value_mapping(self):
        fetcher, recorder = self.make_fetcher(ok([
            {"key": "nav.home", "value": "Startseite"},
            {"key": "nav.hotels", "value": "Hotels"},
        ]))

        result = await fetcher.fetch(EntityType.TRANSLATIONS, ContentQuery(locale="de-DE"))

        assert result == {"nav.home": "Startseite", "nav.hotels": "Hotels"}
        assert json.loads(recorder.params()["filter"]) == {"language": {"_eq": "de-DE"}}

    @pytest.mark.asyncio
    async def test_detail_lookup_not_found_returns_none(self):
        fetcher, recorder = self.make_fetcher(ok([]))

        result = await fetcher.fetch(EntityType.PAGES, ContentQuery(locale="de-DE", lookup="missing"))

        assert result is None
        assert json.loads(recorder.params()["filter"]) == {
            "_and": [{"slug": {"_eq": "missing"}}, {"status": {"_eq": "Published"}}]
        }

    @pytest.mark.asyncio
    async def test_room_detail_looks_up_by_id(self):
        fetcher, recorder = self.make_fetcher(ok([{"id": "r1", "name": "Suite"}]))

        result = await fetcher.fetch(EntityType.ROOMS, ContentQuery(lookup="r1"))

        assert result == {"id": "r1", "name": "Suite"}
        assert json.loads(recorder.params()["filter"])["_and"][0] == {"id": {"_eq": "r1"}}

    @pytest.mark.asyncio
    async def test_hotel_detail_embeds_published_rooms(self):
        def responder(request):
            if request.url.path == "/items/hotels":
                return httpx.Response(200, json={"data": [{"id": "h1", "slug": "alpine-lodge"}]})
            return httpx.Response(200, json={"data": [{"id": "r1", "hotel": "h1"}]})

        fetcher, recorder = self.make_fetcher(responder)

        result = await fetcher.fetch(EntityType.HOTELS, ContentQuery(locale="de-DE", lookup="alpine-lodge"))

        assert result["rooms"] == [{"id": "r1", "hotel": "h1"}]
        room_filter = json.loads(recorder.params(1)["filter"])
        assert room_filter == {"_and": [{"hotel": {"_eq": "h1"}}, {"status": {"_eq": "Published"}}]}

    @pytest.mark.asyncio
    async def test_embed_failure_degrades_to_empty_list(self):
        def responder(request):
            if request.url.path == "/items/destinations":
                return httpx.Response(200, json={"data": [{"id": "d1", "slug": "alps"}]})
            return httpx.Response(500, json={"errors": [{"message": "boom"}]})

        fetcher, _ = self.make_fetcher(responder)

        result = await fetcher.fetch(EntityType.DESTINATIONS, ContentQuery(locale="de-DE", lookup="alps"))

        assert isinstance(result, Uncacheable)
        assert result.reason == "embed_failed"
        assert result.data["id"] == "d1"
        assert result.data["hotels"] == []

    @pytest.mark.asyncio
    async def test_primary_failure_propagates(self):
        fetcher, _ = self.make_fetcher(lambda request: httpx.Response(502, text="bad gateway"))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await fetcher.fetch(EntityType.HOTELS, ContentQuery(locale="de-DE"))

        assert exc_info.value.upstream_status == 502
