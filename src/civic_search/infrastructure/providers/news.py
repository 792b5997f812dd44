"""
News Provider - external news search API.

Talks to a Bing-News-style endpoint (``value`` list of articles with
``name``, ``description``, ``url``, ``datePublished``, ``provider``,
``category``, ``clusteredArticles``). Trusted local outlets and widely
clustered stories are boosted; local-indicator matches add an affinity
bonus for local requests.
"""

from __future__ import annotations

import logging
import urllib.parse
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from civic_search.application.search.relevance import NEWS_RECENCY, ScoringContext
from civic_search.application.search.synthetic import SyntheticTemplate
from civic_search.core.exceptions import ParseError
from civic_search.domain.entities.content import ContentKind, Region
from civic_search.infrastructure.http.base_client import BaseAPIClient
from civic_search.infrastructure.providers.base import ContentProvider
from civic_search.infrastructure.providers.enhancement import (
    NEWS_CATEGORY_EXPANSIONS,
    enhance_query,
    generate_tags,
    infer_category,
)

if TYPE_CHECKING:
    from datetime import datetime

    import httpx

    from civic_search.application.search.normalizer import RecordNormalizer
    from civic_search.application.search.regional import RegionClassifier
    from civic_search.application.search.relevance import RelevanceScorer
    from civic_search.application.search.synthetic import SyntheticContentGenerator
    from civic_search.domain.entities.content import ContentItem
    from civic_search.shared.settings import NewsProviderSettings

logger = logging.getLogger(__name__)

NEWS_BASE_SCORE = 65.0
TRUSTED_SOURCE_BONUS = 25.0
LOCAL_AFFINITY_PER_MATCH = 12.0
CLUSTER_BONUS_PER_ARTICLE = 2.0
CLUSTER_BONUS_CAP = 15.0
MAX_COUNT = 100

NEWS_FALLBACK_SOURCES = (
    "El Tiempo",
    "BBC News",
    "CNN Español",
    "Reuters",
    "El Espectador",
    "Associated Press",
    "Semana",
    "La República",
)
NEWS_FALLBACK_LOCAL = frozenset({"El Tiempo", "El Espectador", "Semana", "La República"})


class NewsAPIClient(BaseAPIClient):
    """HTTP client for the news search endpoint."""

    _service_name = "NewsAPI"

    def __init__(
        self,
        settings: NewsProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=settings.base_url,
            timeout=settings.timeout,
            headers={
                "Ocp-Apim-Subscription-Key": settings.api_key or "",
                "User-Agent": settings.user_agent,
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def search(self, query: str, *, count: int, market: str, freshness: str = "Month") -> list[dict[str, Any]]:
        """Return the raw article records for ``query``."""
        payload = await self._get_json(
            "",
            params={
                "q": query,
                "count": min(count, MAX_COUNT),
                "offset": 0,
                "mkt": market,
                "safeSearch": "Moderate",
                "textDecorations": "false",
                "textFormat": "Raw",
                "freshness": freshness,
                "sortBy": "Relevance",
            },
        )
        articles = payload.get("value", [])
        if not isinstance(articles, list):
            raise ParseError("'value' is not a list", source=self._service_name)
        return [a for a in articles if isinstance(a, dict)]


def market_code(language: str, region: str | None) -> str:
    """Upstream market for a language/region pair."""
    if language != "es":
        return "en-US"
    if region == Region.LOCAL.value:
        return "es-CO"
    if region == Region.REGIONAL.value:
        return "es-MX"
    return "es-ES"


def _source_name(record: dict[str, Any]) -> str:
    providers = record.get("provider")
    if isinstance(providers, list) and providers and isinstance(providers[0], dict) and providers[0].get("name"):
        return str(providers[0]["name"])
    host = urllib.parse.urlparse(str(record.get("url", ""))).hostname or ""
    return host.removeprefix("www.") or "News"


class NewsProvider(ContentProvider):
    """
    External news provider.

    Usage:
        provider = NewsProvider(settings.news, generator)
        items = await provider.search("reforma pensional", max_results=4)
    """

    provider_id = "news_api"
    kinds = frozenset({ContentKind.NEWS})
    affinity_per_match = LOCAL_AFFINITY_PER_MATCH

    def __init__(
        self,
        settings: NewsProviderSettings,
        generator: SyntheticContentGenerator,
        *,
        client: NewsAPIClient | None = None,
        scorer: RelevanceScorer | None = None,
        classifier: RegionClassifier | None = None,
        normalizer: RecordNormalizer | None = None,
        fallback_on_empty: bool = True,
    ) -> None:
        super().__init__(
            generator,
            scorer=scorer,
            classifier=classifier,
            normalizer=normalizer,
            enabled=settings.is_configured,
            timeout=settings.timeout,
            fallback_on_empty=fallback_on_empty,
        )
        self._settings = settings
        self._client = client if client is not None else (NewsAPIClient(settings) if settings.is_configured else None)

    def enhance_query(self, query: str, region: str | None, category: str | None) -> str:
        return enhance_query(
            query,
            region,
            category,
            profile=self._classifier.profile,
            expansions=NEWS_CATEGORY_EXPANSIONS,
        )

    async def suggestions(self, query: str) -> list[str]:
        query = query.strip()
        if not query:
            return []
        return [
            f"{query} {self._classifier.profile.local_qualifier} noticias",
            f"{query} internacional",
            f"{query} último momento",
            f"{query} análisis",
        ]

    def scoring_context(self, now: datetime, item: ContentItem | None = None) -> ScoringContext:
        bonus = 0.0
        if item is not None:
            if item.priority_source or self._classifier.is_trusted_source(item.source_name):
                bonus += TRUSTED_SOURCE_BONUS
            clustered = item.extra.get("clusteredArticles") or 0
            bonus += min(CLUSTER_BONUS_CAP, clustered * CLUSTER_BONUS_PER_ARTICLE)
        return ScoringContext(now=now, base_score=NEWS_BASE_SCORE, recency=NEWS_RECENCY, extra_bonus=bonus)

    async def _fetch(
        self,
        query: str,
        *,
        category: str | None,
        max_results: int,
        language: str,
        region: str,
    ) -> list[ContentItem]:
        if self._client is None:
            return []
        enhanced = self.enhance_query(query, region, category)
        logger.debug(f"{self.provider_id}: querying {enhanced!r}")
        records = await self._client.search(enhanced, count=max_results, market=market_code(language, region))
        now = self.now()
        items = [self._to_item(record, query, category, language, region, now) for record in records]
        return items[:max_results]

    def _to_item(
        self,
        record: dict[str, Any],
        query: str,
        category: str | None,
        language: str,
        region: str,
        now: datetime,
    ) -> ContentItem:
        source = _source_name(record)
        title = str(record.get("name") or "")
        description = str(record.get("description") or "")
        upstream_category = record.get("category")
        clustered = record.get("clusteredArticles")
        item = self._normalizer.normalize(
            {**record, "id": record.get("url") or title, "source_name": source, "author": source},
            provider_id=self.provider_id,
            kind=ContentKind.NEWS,
            region=self._classifier.classify(title, description, source, url=record.get("url")),
            tags=generate_tags(query, title, [upstream_category] if isinstance(upstream_category, str) else ()),
            category=infer_category(title, description, requested=category, upstream=upstream_category),
            language=language,
            priority_source=self._classifier.is_trusted_source(source),
            extra={
                "clusteredArticles": len(clustered) if isinstance(clustered, list) else 0,
                "wordCount": len(description.split()),
            },
            now=now,
        )
        return item.with_score(self.score_item(item, query, self.scoring_context(now, item), region))

    def synthetic_template(self) -> SyntheticTemplate:
        return SyntheticTemplate(
            provider_id=self.provider_id,
            kind=ContentKind.NEWS,
            source_names=NEWS_FALLBACK_SOURCES,
            local_sources=NEWS_FALLBACK_LOCAL,
            title_format="{query}: {angle} - {source}",
            summary_format="Artículo informativo sobre {query} ({angle}). Contenido de referencia mientras la fuente de noticias no está disponible.",
            url_format="https://news.example.com/article-{index}",
            tags=("noticias",),
            max_items=8,
            spacing=timedelta(hours=1),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
