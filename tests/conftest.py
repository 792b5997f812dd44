"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from civic_search.application.search.aggregator import SearchAggregator
from civic_search.application.search.facade import SearchFacade
from civic_search.application.search.regional import RegionalPrioritizer
from civic_search.application.search.synthetic import SyntheticContentGenerator, SyntheticTemplate
from civic_search.domain.entities.content import ContentItem, ContentKind, EngagementCounters, Region
from civic_search.infrastructure.entities import EntityKind, InMemoryEntityStore
from civic_search.infrastructure.providers.base import ContentProvider
from civic_search.infrastructure.providers.internal import InternalEntityProvider
from civic_search.infrastructure.providers.news import NewsProvider
from civic_search.infrastructure.providers.video import VideoProvider
from civic_search.shared.settings import SearchSettings

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


# ============================================================
# Clock / Generator
# ============================================================


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def generator() -> SyntheticContentGenerator:
    """Seeded generator with a frozen clock."""
    return SyntheticContentGenerator(seed=7, clock=lambda: FIXED_NOW)


# ============================================================
# Content Fixtures
# ============================================================


@pytest.fixture
def make_item():
    """Factory for ContentItem with sensible defaults."""

    def _make(
        item_id: str,
        *,
        kind: ContentKind = ContentKind.NEWS,
        score: float = 50.0,
        region: Region = Region.INTERNATIONAL,
        hours_ago: float = 1.0,
        title: str | None = None,
        url: str = "",
        priority_source: bool = False,
        synthetic: bool = False,
        provider_id: str = "test",
        likes: int | None = None,
        views: int | None = None,
        comments: int | None = None,
        **kwargs,
    ) -> ContentItem:
        return ContentItem(
            id=item_id,
            kind=kind,
            title=title if title is not None else f"Item {item_id}",
            source_provider_id=provider_id,
            timestamp=FIXED_NOW - timedelta(hours=hours_ago),
            region=region,
            relevance_score=score,
            url=url,
            priority_source=priority_source,
            synthetic=synthetic,
            engagement=EngagementCounters(views=views, likes=likes, comments=comments),
            **kwargs,
        )

    return _make


@pytest.fixture
def store() -> InMemoryEntityStore:
    """Demo entity store with timestamps relative to the frozen clock."""
    return InMemoryEntityStore.with_demo_content(now=FIXED_NOW)


@pytest.fixture
def settings() -> SearchSettings:
    """Default settings: both external providers run in fallback mode."""
    return SearchSettings()


# ============================================================
# Providers
# ============================================================


class StaticProvider(ContentProvider):
    """Provider double returning preset items, optionally slow or failing."""

    def __init__(
        self,
        provider_id: str,
        kind: ContentKind,
        items=(),
        *,
        generator: SyntheticContentGenerator,
        delay: float = 0.0,
        error: Exception | None = None,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(generator, timeout=timeout)
        self.provider_id = provider_id
        self.kinds = frozenset({kind})
        self._kind = kind
        self._items = list(items)
        self._delay = delay
        self._error = error
        self.calls: list[dict] = []
        self.completed = 0

    async def _fetch(self, query, *, category, max_results, language, region):
        self.calls.append({"query": query, "max_results": max_results, "region": region})
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        self.completed += 1
        return self._items[:max_results]

    def synthetic_template(self) -> SyntheticTemplate:
        return SyntheticTemplate(
            provider_id=self.provider_id,
            kind=self._kind,
            source_names=("Fallback",),
            title_format="{query} fallback {number} ({provider_id})",
            max_items=3,
        )


@pytest.fixture
def make_provider(generator):
    """Factory for StaticProvider bound to the seeded generator."""

    def _make(provider_id: str, kind: ContentKind = ContentKind.NEWS, items=(), **kwargs) -> StaticProvider:
        return StaticProvider(provider_id, kind, items, generator=generator, **kwargs)

    return _make


@pytest.fixture
def providers(settings, store, generator) -> list[ContentProvider]:
    """The production provider set: four internal providers, news and video in fallback mode."""
    internal = [
        InternalEntityProvider(kind, store, generator)
        for kind in (EntityKind.POST, EntityKind.NEWS_TOPIC, EntityKind.REEL, EntityKind.USER)
    ]
    return [*internal, NewsProvider(settings.news, generator), VideoProvider(settings.video, generator)]


@pytest.fixture
def aggregator(providers) -> SearchAggregator:
    return SearchAggregator(providers, prioritizer=RegionalPrioritizer())


@pytest.fixture
def facade(aggregator, store) -> SearchFacade:
    return SearchFacade(aggregator, store)
