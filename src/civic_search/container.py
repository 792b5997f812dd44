"""
Application DI Container (dependency-injector).

Builds the whole search stack once at startup from explicit settings.

Usage::

    from civic_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({"synthetic_seed": 7})

    facade = container.facade()

    # In tests, override any provider:
    container.settings.override(providers.Object(SearchSettings()))
    container.entity_store.override(providers.Object(InMemoryEntityStore(records)))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dependency_injector import containers, providers

if TYPE_CHECKING:
    from civic_search.application.search.aggregator import SearchAggregator
    from civic_search.application.search.facade import SearchFacade
    from civic_search.application.search.normalizer import RecordNormalizer
    from civic_search.application.search.regional import RegionalPrioritizer, RegionClassifier
    from civic_search.application.search.relevance import RelevanceScorer
    from civic_search.application.search.synthetic import SyntheticContentGenerator
    from civic_search.infrastructure.entities import EntityLookup
    from civic_search.infrastructure.providers.base import ContentProvider
    from civic_search.shared.settings import SearchSettings

logger = logging.getLogger(__name__)


def _load_settings() -> SearchSettings:
    """Read the environment once."""
    from civic_search.shared.settings import SearchSettings

    return SearchSettings.from_env()


def _create_generator(seed: int | None) -> SyntheticContentGenerator:
    from civic_search.application.search.synthetic import SyntheticContentGenerator

    return SyntheticContentGenerator(seed=seed or 0)


def _create_entity_store() -> EntityLookup:
    from civic_search.infrastructure.entities import InMemoryEntityStore

    return InMemoryEntityStore.with_demo_content()


def _create_prioritizer(settings: SearchSettings) -> RegionalPrioritizer:
    from civic_search.application.search.regional import RegionalPrioritizer

    agg = settings.aggregator
    return RegionalPrioritizer(
        local_region=agg.local_region,
        priority_threshold=agg.priority_score_threshold,
        enabled=agg.prioritize_local,
    )


def _create_news_provider(
    settings: SearchSettings,
    generator: SyntheticContentGenerator,
    scorer: RelevanceScorer,
    classifier: RegionClassifier,
    normalizer: RecordNormalizer,
) -> ContentProvider:
    from civic_search.infrastructure.providers.news import NewsProvider

    return NewsProvider(
        settings.news,
        generator,
        scorer=scorer,
        classifier=classifier,
        normalizer=normalizer,
        fallback_on_empty=settings.fallback_on_empty,
    )


def _create_video_provider(
    settings: SearchSettings,
    generator: SyntheticContentGenerator,
    scorer: RelevanceScorer,
    classifier: RegionClassifier,
    normalizer: RecordNormalizer,
) -> ContentProvider:
    from civic_search.infrastructure.providers.video import VideoProvider

    return VideoProvider(
        settings.video,
        generator,
        scorer=scorer,
        classifier=classifier,
        normalizer=normalizer,
        fallback_on_empty=settings.fallback_on_empty,
    )


def _create_internal_providers(
    settings: SearchSettings,
    lookup: EntityLookup,
    generator: SyntheticContentGenerator,
    scorer: RelevanceScorer,
    classifier: RegionClassifier,
    normalizer: RecordNormalizer,
) -> list[ContentProvider]:
    from civic_search.infrastructure.entities import EntityKind
    from civic_search.infrastructure.providers.internal import InternalEntityProvider

    kinds: tuple[EntityKind, ...] = (EntityKind.POST, EntityKind.NEWS_TOPIC, EntityKind.REEL, EntityKind.USER)
    return [
        InternalEntityProvider(
            kind,
            lookup,
            generator,
            scorer=scorer,
            classifier=classifier,
            normalizer=normalizer,
            timeout=settings.aggregator.provider_timeout,
            fallback_on_empty=settings.fallback_on_empty,
        )
        for kind in kinds
    ]


def _collect_providers(
    internal: list[ContentProvider],
    news: ContentProvider,
    video: ContentProvider,
) -> list[ContentProvider]:
    return [*internal, news, video]


def _create_aggregator(
    settings: SearchSettings,
    content_providers: list[ContentProvider],
    prioritizer: RegionalPrioritizer,
    normalizer: RecordNormalizer,
) -> SearchAggregator:
    from civic_search.application.search.aggregator import SearchAggregator

    logger.info(f"Search providers: {', '.join(repr(p) for p in content_providers)}")
    return SearchAggregator(
        content_providers,
        prioritizer=prioritizer,
        normalizer=normalizer,
        provider_timeout=settings.aggregator.provider_timeout,
        max_total_results=settings.aggregator.max_total_results,
    )


def _create_facade(
    settings: SearchSettings,
    aggregator: SearchAggregator,
    lookup: EntityLookup,
) -> SearchFacade:
    from civic_search.application.search.facade import SearchFacade

    return SearchFacade(
        aggregator,
        lookup,
        max_page_size=settings.max_page_size,
        default_page_size=settings.default_page_size,
        suggestion_limit=settings.suggestion_limit,
        min_suggestion_length=settings.min_suggestion_length,
        popular_queries=settings.popular_queries,
    )


def _create_scorer() -> RelevanceScorer:
    from civic_search.application.search.relevance import RelevanceScorer

    return RelevanceScorer()


def _create_classifier() -> RegionClassifier:
    from civic_search.application.search.regional import RegionClassifier

    return RegionClassifier()


def _create_normalizer() -> RecordNormalizer:
    from civic_search.application.search.normalizer import RecordNormalizer

    return RecordNormalizer()


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the search service.

    Manages creation of all core services:
    - ``settings``: SearchSettings read from the environment once
    - ``entity_store``: EntityLookup over local records
    - ``content_providers``: internal, news and video providers
    - ``aggregator`` / ``facade``: the search engine and its entry point
    """

    config = providers.Configuration()

    settings = providers.Singleton(_load_settings)

    generator = providers.Singleton(_create_generator, seed=config.synthetic_seed)
    scorer = providers.Singleton(_create_scorer)
    classifier = providers.Singleton(_create_classifier)
    normalizer = providers.Singleton(_create_normalizer)

    entity_store = providers.Singleton(_create_entity_store)

    news_provider = providers.Singleton(
        _create_news_provider,
        settings=settings,
        generator=generator,
        scorer=scorer,
        classifier=classifier,
        normalizer=normalizer,
    )

    video_provider = providers.Singleton(
        _create_video_provider,
        settings=settings,
        generator=generator,
        scorer=scorer,
        classifier=classifier,
        normalizer=normalizer,
    )

    internal_providers = providers.Singleton(
        _create_internal_providers,
        settings=settings,
        lookup=entity_store,
        generator=generator,
        scorer=scorer,
        classifier=classifier,
        normalizer=normalizer,
    )

    content_providers = providers.Singleton(
        _collect_providers,
        internal=internal_providers,
        news=news_provider,
        video=video_provider,
    )

    prioritizer = providers.Singleton(_create_prioritizer, settings=settings)

    aggregator = providers.Singleton(
        _create_aggregator,
        settings=settings,
        content_providers=content_providers,
        prioritizer=prioritizer,
        normalizer=normalizer,
    )

    facade = providers.Singleton(
        _create_facade,
        settings=settings,
        aggregator=aggregator,
        lookup=entity_store,
    )


__all__ = ["ApplicationContainer"]
