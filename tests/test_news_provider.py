"""Tests for the external news provider and its HTTP client."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from civic_search.core.exceptions import NetworkError, ParseError
from civic_search.domain.entities.content import ContentKind, Region
from civic_search.infrastructure.providers.news import (
    NewsAPIClient,
    NewsProvider,
    _source_name,
    market_code,
)
from civic_search.shared.settings import NewsProviderSettings

ENABLED = NewsProviderSettings(api_key="news-key", enabled=True, base_url="https://news.test/search")


@pytest.fixture
def client():
    client = AsyncMock(spec=NewsAPIClient)
    client.search.return_value = []
    return client


@pytest.fixture
def provider(client, generator):
    return NewsProvider(ENABLED, generator, client=client)


def article(now, **overrides):
    record = {
        "name": "Reforma pensional avanza en Bogotá",
        "description": "El Congreso de Colombia debate la reforma",
        "url": "https://www.eltiempo.com/politica/reforma",
        "datePublished": (now - timedelta(hours=2)).isoformat(),
        "provider": [{"name": "El Tiempo"}],
        "category": "Politics",
        "clusteredArticles": [{}, {}, {}],
    }
    record.update(overrides)
    return record


# ============================================================
# Helpers
# ============================================================


class TestHelpers:
    def test_market_code(self):
        assert market_code("es", "local") == "es-CO"
        assert market_code("es", "regional") == "es-MX"
        assert market_code("es", "world") == "es-ES"
        assert market_code("en", "local") == "en-US"

    def test_source_name(self):
        assert _source_name({"provider": [{"name": "Semana"}]}) == "Semana"
        assert _source_name({"url": "https://www.bbc.com/news/x"}) == "bbc.com"
        assert _source_name({}) == "News"


# ============================================================
# Provider
# ============================================================


class TestNewsProvider:
    @pytest.mark.asyncio
    async def test_disabled_returns_synthetic(self, settings, generator):
        provider = NewsProvider(settings.news, generator)
        assert not provider.enabled
        items = await provider.search("reforma", max_results=4)
        assert len(items) == 4
        assert all(i.synthetic and i.kind is ContentKind.NEWS for i in items)
        assert [i.id for i in items] == [f"news_api:synthetic:{n}" for n in range(4)]
        assert {i.region for i in items} == {Region.LOCAL, Region.INTERNATIONAL}

    @pytest.mark.asyncio
    async def test_real_article(self, provider, client, now):
        client.search.return_value = [article(now)]
        items = await provider.search("reforma", max_results=5)

        assert len(items) == 1
        item = items[0]
        assert item.id == "news_api:https://www.eltiempo.com/politica/reforma"
        assert item.source_name == "El Tiempo"
        assert item.region is Region.LOCAL
        assert item.priority_source
        assert item.category == "politica"
        assert item.extra["clusteredArticles"] == 3
        assert item.relevance_score == 100.0
        assert not item.synthetic

    @pytest.mark.asyncio
    async def test_query_enhanced_for_local_market(self, provider, client, now):
        client.search.return_value = [article(now)]
        await provider.search("reforma", category="economia", max_results=3, region="local")
        args, kwargs = client.search.await_args
        assert args[0] == "reforma Colombia economía mercados finanzas"
        assert kwargs["market"] == "es-CO"
        assert kwargs["count"] == 3

    @pytest.mark.asyncio
    async def test_world_region_query_unchanged(self, provider, client, now):
        client.search.return_value = [article(now)]
        await provider.search("reforma", region="world")
        args, kwargs = client.search.await_args
        assert args[0] == "reforma"
        assert kwargs["market"] == "es-ES"

    @pytest.mark.asyncio
    async def test_affinity_only_for_local_requests(self, provider, client, now):
        record = article(
            now,
            name="Elecciones en Medellín y Cali",
            description="",
            url="https://reuters.com/x",
            provider=[{"name": "Reuters"}],
            datePublished=(now - timedelta(days=10)).isoformat(),
            clusteredArticles=None,
            category=None,
        )
        client.search.return_value = [record]
        local = (await provider.search("elecciones", region="local"))[0]
        world = (await provider.search("elecciones", region="world"))[0]
        # base 65 + title 10, plus 12 per local indicator (medellín, cali)
        assert world.relevance_score == 75.0
        assert local.relevance_score == 99.0

    @pytest.mark.asyncio
    async def test_upstream_error_returns_synthetic(self, provider, client):
        client.search.side_effect = NetworkError()
        items = await provider.search("reforma", max_results=3)
        assert len(items) == 3
        assert all(i.synthetic for i in items)

    @pytest.mark.asyncio
    async def test_empty_results_return_synthetic(self, provider):
        items = await provider.search("xyznonexistent123", max_results=3)
        assert items
        assert all(i.synthetic for i in items)
        assert all("xyznonexistent123" in i.title for i in items)

    @pytest.mark.asyncio
    async def test_synthetic_scores_below_real(self, provider, client, now):
        client.search.return_value = [article(now)]
        real = await provider.search("reforma")
        client.search.return_value = []
        synthetic = await provider.search("reforma")
        assert max(i.relevance_score for i in synthetic) < real[0].relevance_score

    @pytest.mark.asyncio
    async def test_suggestions(self, provider):
        suggestions = await provider.suggestions("reforma")
        assert suggestions[0] == "reforma Colombia noticias"
        assert len(suggestions) == 4
        assert await provider.suggestions("  ") == []

    @pytest.mark.asyncio
    async def test_close(self, provider, client):
        await provider.close()
        client.close.assert_awaited_once()


# ============================================================
# HTTP client
# ============================================================


class TestNewsAPIClient:
    @pytest.mark.asyncio
    async def test_search_request(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"value": [{"name": "A"}, "junk"]})

        async with NewsAPIClient(ENABLED, transport=httpx.MockTransport(handler)) as client:
            articles = await client.search("reforma", count=500, market="es-CO")

        assert articles == [{"name": "A"}]
        request = seen[0]
        assert request.headers["Ocp-Apim-Subscription-Key"] == "news-key"
        assert request.url.params["q"] == "reforma"
        assert request.url.params["count"] == "100"
        assert request.url.params["mkt"] == "es-CO"

    @pytest.mark.asyncio
    async def test_malformed_value(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"value": "nope"}))
        async with NewsAPIClient(ENABLED, transport=transport) as client:
            with pytest.raises(ParseError):
                await client.search("reforma", count=5, market="es-CO")

    @pytest.mark.asyncio
    async def test_missing_value(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        async with NewsAPIClient(ENABLED, transport=transport) as client:
            assert await client.search("reforma", count=5, market="es-CO") == []
