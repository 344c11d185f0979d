"""
Tests for strategy selection and the next-link / offset paging strategies.
"""

import asyncio

import httpx
import pytest

from ogc_loader.cancellation import CancellationToken
from ogc_loader.exceptions import (
    InvalidConfigurationError,
    LoadCancelledError,
    PageFetchError,
    PageLimitExceededError,
)
from ogc_loader.next_strategy import NextStrategy
from ogc_loader.offset_strategy import OffsetStrategy
from ogc_loader.strategy import StrategyKind, StrategyOptions, create_strategy, select_strategy


def _options(client, url, limit, **kwargs):
    chunks = []
    options = StrategyOptions(
        client=client,
        full_url=httpx.URL(url),
        on_features_loaded=chunks.append,
        limit=limit,
        **kwargs
    )
    return options, chunks


# ============================================================================
# SELECTION
# ============================================================================

class TestSelectStrategy:

    @pytest.mark.parametrize("configured, supports_offset, expected", [
        (None, True, StrategyKind.OFFSET),
        (None, False, StrategyKind.NEXT),
        ("next", True, StrategyKind.NEXT),
        ("next", False, StrategyKind.NEXT),
        ("offset", True, StrategyKind.OFFSET),
        ("offset", False, StrategyKind.NEXT),
    ])
    def test_selection(self, configured, supports_offset, expected):
        assert select_strategy(configured, supports_offset) is expected

    def test_create_strategy(self, make_client):
        options, _ = _options(make_client(lambda r: httpx.Response(200)), "https://example.com/items", 10)

        offset = create_strategy(StrategyKind.OFFSET, options, concurrency=3)
        assert isinstance(offset, OffsetStrategy)
        assert offset.concurrency == 3
        assert isinstance(create_strategy(StrategyKind.NEXT, options), NextStrategy)


# ============================================================================
# NEXT STRATEGY
# ============================================================================

class TestNextStrategy:

    @pytest.mark.asyncio
    async def test_follows_next_links(self, fake_server, make_client, service_url):
        server = fake_server(total=12, supports_offset=False)
        options, chunks = _options(
            make_client(server.handler), f"{service_url}/collections/roads/items?token=abc", 5
        )

        features = await NextStrategy(options).load()

        assert [f["id"] for f in features] == list(range(12))
        assert [len(c) for c in chunks] == [5, 5, 2]
        assert len(server.page_requests) == 3
        assert server.page_requests[0].url.params["limit"] == "5"
        assert all(r.url.params["token"] == "abc" for r in server.page_requests)

    @pytest.mark.asyncio
    async def test_no_links_terminates_after_one_request(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"type": "FeatureCollection", "features": [{"id": 1}, {"id": 2}]})

        options, chunks = _options(make_client(handler), "https://example.com/items", 100)
        features = await NextStrategy(options).load()

        assert features == [{"id": 1}, {"id": 2}]
        assert chunks == [[{"id": 1}, {"id": 2}]]
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_next_link_used_verbatim(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            if len(requests) == 1:
                return httpx.Response(200, json={
                    "type": "FeatureCollection",
                    "features": [{"id": 1}],
                    "links": [{"rel": "next", "href": "https://other.example.com/page2?k=opaque"}],
                })
            return httpx.Response(200, json={"type": "FeatureCollection", "features": [{"id": 2}]})

        options, _ = _options(make_client(handler), "https://example.com/items", 1)
        await NextStrategy(options).load()

        assert str(requests[1].url) == "https://other.example.com/page2?k=opaque"

    @pytest.mark.asyncio
    async def test_error_aborts_but_keeps_streamed_pages(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            if len(requests) == 1:
                return httpx.Response(200, json={
                    "type": "FeatureCollection",
                    "features": [{"id": 1}],
                    "links": [{"rel": "next", "href": "https://example.com/items?page=2"}],
                })
            return httpx.Response(500)

        options, chunks = _options(make_client(handler), "https://example.com/items", 1)
        with pytest.raises(PageFetchError):
            await NextStrategy(options).load()

        assert chunks == [[{"id": 1}]]

    @pytest.mark.asyncio
    async def test_max_pages_bounds_the_chain(self, fake_server, make_client, service_url):
        server = fake_server(total=50, supports_offset=False)
        options, chunks = _options(
            make_client(server.handler), f"{service_url}/collections/roads/items", 5, max_pages=3
        )

        with pytest.raises(PageLimitExceededError) as exc_info:
            await NextStrategy(options).load()

        assert exc_info.value.max_pages == 3
        assert len(server.page_requests) == 3
        assert len(chunks) == 3

    @pytest.mark.asyncio
    async def test_max_pages_not_hit(self, fake_server, make_client, service_url):
        server = fake_server(total=10, supports_offset=False)
        options, _ = _options(
            make_client(server.handler), f"{service_url}/collections/roads/items", 5, max_pages=2
        )
        features = await NextStrategy(options).load()
        assert len(features) == 10


# ============================================================================
# OFFSET STRATEGY
# ============================================================================

class TestOffsetStrategy:

    def test_invalid_concurrency(self, make_client):
        options, _ = _options(make_client(lambda r: httpx.Response(200)), "https://example.com/items", 10)
        with pytest.raises(InvalidConfigurationError):
            OffsetStrategy(options, concurrency=0)

    @pytest.mark.asyncio
    async def test_28_features_page_3_concurrency_2(self, fake_server, make_client, service_url):
        server = fake_server(total=28)
        options, chunks = _options(make_client(server.handler), f"{service_url}/collections/roads/items", 3)

        features = await OffsetStrategy(options, concurrency=2).load()

        assert len(server.page_requests) == 10
        assert sorted(f["id"] for f in features) == list(range(28))
        assert sorted(f["id"] for chunk in chunks for f in chunk) == list(range(28))
        offsets = sorted(int(r.url.params["offset"]) for r in server.page_requests)
        assert offsets == list(range(0, 28, 3))

    @pytest.mark.asyncio
    async def test_pages_requested_concurrently(self, fake_server, make_client, service_url):
        server = fake_server(total=6)
        in_flight = 0
        max_in_flight = 0

        async def handler(request):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await server.handler(request)

        options, _ = _options(make_client(handler), f"{service_url}/collections/roads/items", 2)
        await OffsetStrategy(options, concurrency=3).load()

        assert max_in_flight == 3

    @pytest.mark.asyncio
    async def test_round_size_follows_known_total(self, fake_server, make_client, service_url):
        server = fake_server(total=7)
        options, _ = _options(make_client(server.handler), f"{service_url}/collections/roads/items", 2)

        await OffsetStrategy(options, concurrency=6).load()

        # One speculative round of 6 pages covers all 7 features
        assert len(server.page_requests) == 6

    @pytest.mark.asyncio
    async def test_each_page_streams_as_one_chunk(self, fake_server, make_client, service_url):
        server = fake_server(total=9)
        options, chunks = _options(make_client(server.handler), f"{service_url}/collections/roads/items", 3)

        await OffsetStrategy(options, concurrency=3).load()

        assert len(chunks) == 3
        for chunk in chunks:
            ids = [f["id"] for f in chunk]
            assert ids == list(range(ids[0], ids[0] + 3))

    @pytest.mark.asyncio
    async def test_continuation_from_last_offset_not_last_completed(self, make_client):
        """
        Round 1 requests offsets 0 and 3. Offset 3 answers first with a next
        link and numberMatched=9; offset 0 answers last claiming the end of
        the results. The loader must follow offset 3.
        """
        requests = []

        async def handler(request):
            requests.append(request)
            offset = int(request.url.params["offset"])
            ids = list(range(offset, offset + 3))
            body = {"type": "FeatureCollection", "features": [{"id": i} for i in ids]}
            if offset == 0:
                await asyncio.sleep(0.05)
                body["numberMatched"] = 3
            elif offset == 3:
                body["numberMatched"] = 9
                body["links"] = [{"rel": "next", "href": str(request.url.copy_set_param("offset", "6"))}]
            else:
                body["numberMatched"] = 9
            return httpx.Response(200, json=body)

        options, _ = _options(make_client(handler), "https://example.com/items", 3)
        features = await OffsetStrategy(options, concurrency=2).load()

        assert sorted(f["id"] for f in features) == list(range(9))
        assert [int(r.url.params["offset"]) for r in requests][-1] == 6
        assert len(requests) == 3

    @pytest.mark.asyncio
    async def test_failed_page_fails_round_and_cancels_siblings(self, make_client):
        completed = []

        async def handler(request):
            offset = int(request.url.params["offset"])
            if offset == 0:
                return httpx.Response(500)
            await asyncio.sleep(1)
            completed.append(offset)
            return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

        options, chunks = _options(make_client(handler), "https://example.com/items", 10)
        with pytest.raises(PageFetchError) as exc_info:
            await OffsetStrategy(options, concurrency=3).load()

        assert exc_info.value.status_code == 500
        assert completed == []
        assert chunks == []

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_requests(self, fake_server, make_client, service_url):
        server = fake_server(total=30)
        token = CancellationToken()
        chunks = []

        def on_features(features):
            chunks.append(features)
            token.cancel("Extent changed")

        options = StrategyOptions(
            client=make_client(server.handler),
            full_url=httpx.URL(f"{service_url}/collections/roads/items"),
            on_features_loaded=on_features,
            limit=5,
            token=token
        )

        with pytest.raises(LoadCancelledError) as exc_info:
            await OffsetStrategy(options, concurrency=1).load()

        assert exc_info.value.reason == "Extent changed"
        assert len(server.page_requests) == 1
        assert len(chunks) == 1
