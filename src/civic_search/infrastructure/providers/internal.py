"""
Internal entity providers - posts, news topics, reels and users owned by the platform.

One InternalEntityProvider instance per entity kind, all backed by the same
EntityLookup. Scores come from the plain additive model (base 0) with small
recency bonuses. Platform records are local by origin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from civic_search.application.search.relevance import INTERNAL_RECENCY, ScoringContext
from civic_search.application.search.synthetic import SyntheticTemplate
from civic_search.domain.entities.content import ContentKind, Region
from civic_search.infrastructure.entities import EntityKind
from civic_search.infrastructure.providers.base import ContentProvider

if TYPE_CHECKING:
    from datetime import datetime

    from civic_search.application.search.normalizer import RecordNormalizer
    from civic_search.application.search.regional import RegionClassifier
    from civic_search.application.search.relevance import RelevanceScorer
    from civic_search.application.search.synthetic import SyntheticContentGenerator
    from civic_search.domain.entities.content import ContentItem
    from civic_search.infrastructure.entities import EntityLookup, EntityRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _KindProfile:
    provider_id: str
    content_kind: ContentKind
    sources: tuple[str, ...]
    title_format: str
    summary_format: str
    url_format: str


_PROFILES: dict[EntityKind, _KindProfile] = {
    EntityKind.POST: _KindProfile(
        provider_id="internal_posts",
        content_kind=ContentKind.POST,
        sources=("Comunidad", "Participación ciudadana"),
        title_format="Conversación ciudadana {number}: {query}",
        summary_format="Publicaciones de la comunidad sobre {query}.",
        url_format="/posts/synthetic-{index}",
    ),
    EntityKind.NEWS_TOPIC: _KindProfile(
        provider_id="internal_news",
        content_kind=ContentKind.NEWS,
        sources=("Redacción",),
        title_format="Tema en desarrollo {number}: {query}",
        summary_format="Cobertura editorial sobre {query}.",
        url_format="/news/synthetic-{index}",
    ),
    EntityKind.REEL: _KindProfile(
        provider_id="internal_reels",
        content_kind=ContentKind.VIDEO,
        sources=("Comunidad",),
        title_format="{query} en 60 segundos ({number})",
        summary_format="Video corto de la comunidad sobre {query}.",
        url_format="/reels/synthetic-{index}",
    ),
    EntityKind.USER: _KindProfile(
        provider_id="internal_users",
        content_kind=ContentKind.USER,
        sources=("Comunidad",),
        title_format="Personas que hablan de {query} ({number})",
        summary_format="Perfiles activos en conversaciones sobre {query}.",
        url_format="/users?topic={index}",
    ),
}


class InternalEntityProvider(ContentProvider):
    """
    Content provider over one kind of locally owned record.

    Usage:
        posts = InternalEntityProvider(EntityKind.POST, store, generator)
        items = await posts.search("reforma", max_results=2)
    """

    def __init__(
        self,
        entity_kind: EntityKind,
        lookup: EntityLookup,
        generator: SyntheticContentGenerator,
        *,
        scorer: RelevanceScorer | None = None,
        classifier: RegionClassifier | None = None,
        normalizer: RecordNormalizer | None = None,
        timeout: float = 5.0,
        fallback_on_empty: bool = True,
    ) -> None:
        super().__init__(
            generator,
            scorer=scorer,
            classifier=classifier,
            normalizer=normalizer,
            enabled=True,
            timeout=timeout,
            fallback_on_empty=fallback_on_empty,
        )
        self._entity_kind = entity_kind
        self._lookup = lookup
        self._profile = _PROFILES[entity_kind]
        self.provider_id = self._profile.provider_id
        self.kinds = frozenset({self._profile.content_kind})

    @property
    def entity_kind(self) -> EntityKind:
        return self._entity_kind

    def scoring_context(self, now: datetime, item: ContentItem | None = None) -> ScoringContext:
        return ScoringContext(now=now, base_score=0.0, recency=INTERNAL_RECENCY)

    async def _fetch(
        self,
        query: str,
        *,
        category: str | None,
        max_results: int,
        language: str,
        region: str,
    ) -> list[ContentItem]:
        records = await self._lookup.search(self._entity_kind, query.strip(), max_results)
        now = self.now()
        context = self.scoring_context(now)
        items = []
        for record in records:
            item = self._to_item(record, language, now)
            items.append(item.with_score(self.score_item(item, query, context, region)))
        logger.debug(f"{self.provider_id}: {len(items)} records for {query!r}")
        return items

    def _to_item(self, record: EntityRecord, language: str, now: datetime) -> ContentItem:
        return self._normalizer.normalize(
            record.to_record(),
            provider_id=self.provider_id,
            kind=self._profile.content_kind,
            region=Region.LOCAL,
            tags=record.tags,
            default_source=self._profile.sources[0],
            language=language,
            extra=record.extra,
            now=now,
        )

    def synthetic_template(self) -> SyntheticTemplate:
        profile = self._profile
        return SyntheticTemplate(
            provider_id=profile.provider_id,
            kind=profile.content_kind,
            source_names=profile.sources,
            default_region=Region.LOCAL,
            title_format=profile.title_format,
            summary_format=profile.summary_format,
            url_format=profile.url_format,
            max_items=3,
            spacing=timedelta(hours=6),
            default_category="general",
            likes_range=(0, 50) if profile.content_kind is not ContentKind.USER else None,
        )
