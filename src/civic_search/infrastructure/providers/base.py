"""
Content Provider - one retrieval capability per content source.

Every provider exposes a single coroutine, ``search``, which never raises
(``asyncio.CancelledError`` excepted). Disabled configuration, missing
credentials, network errors, non-2xx answers, malformed payloads and empty
upstream results all end in the same place: the shared synthetic fallback
implemented once here. Variants only implement ``_fetch`` and describe their
fallback shape with ``synthetic_template``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from civic_search.application.search.normalizer import RecordNormalizer
from civic_search.application.search.regional import RegionClassifier
from civic_search.application.search.relevance import (
    RelevanceScorer,
    ScoringContext,
    affinity_bonus,
    clamp_score,
)
from civic_search.core.exceptions import ConfigurationError
from civic_search.domain.entities.content import Region

if TYPE_CHECKING:
    from datetime import datetime

    from civic_search.application.search.synthetic import (
        SyntheticContentGenerator,
        SyntheticTemplate,
    )
    from civic_search.domain.entities.content import ContentItem, ContentKind

logger = logging.getLogger(__name__)

# Subtracted from fallback item scores so real results outrank them
SYNTHETIC_PENALTY = 15.0


class ContentProvider(ABC):
    """
    Base class for content providers.

    Subclasses set ``provider_id`` and ``kinds`` and implement ``_fetch``.

    Example:
        class MyProvider(ContentProvider):
            provider_id = "my_source"
            kinds = frozenset({ContentKind.NEWS})

            async def _fetch(self, query, *, category, max_results, language, region):
                records = await self._client.search(query)
                return [self._to_item(r, query) for r in records]
    """

    provider_id: str = "provider"
    kinds: frozenset[ContentKind] = frozenset()
    # Per local-indicator match, added on top of the clamped base score
    affinity_per_match: float = 0.0

    def __init__(
        self,
        generator: SyntheticContentGenerator,
        *,
        scorer: RelevanceScorer | None = None,
        classifier: RegionClassifier | None = None,
        normalizer: RecordNormalizer | None = None,
        enabled: bool = True,
        timeout: float = 5.0,
        fallback_on_empty: bool = True,
    ) -> None:
        self._generator = generator
        self._scorer = scorer or RelevanceScorer()
        self._classifier = classifier or RegionClassifier()
        self._normalizer = normalizer or RecordNormalizer()
        self._enabled = enabled
        self._timeout = timeout
        self._fallback_on_empty = fallback_on_empty

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def timeout(self) -> float:
        return self._timeout

    def now(self) -> datetime:
        """Current time as seen by this provider (the generator's clock)."""
        return self._generator.now()

    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "fallback-only"
        return f"{type(self).__name__}({self.provider_id!r}, {state})"

    # -------------------------------------------------------------------------
    # Public contract
    # -------------------------------------------------------------------------

    async def search(
        self,
        query: str,
        category: str | None = None,
        max_results: int = 10,
        language: str = "es",
        region: str = Region.LOCAL.value,
    ) -> list[ContentItem]:
        """
        Retrieve up to ``max_results`` scored items for ``query``.

        Returns the synthetic fallback list instead of raising.
        """
        max_results = max(1, max_results)
        try:
            if not self._enabled:
                raise ConfigurationError(f"{self.provider_id} is disabled or missing credentials")
            items = await self._fetch(
                query,
                category=category,
                max_results=max_results,
                language=language,
                region=region,
            )
        except ConfigurationError as e:
            logger.info(f"{self.provider_id}: {e}, returning synthetic results")
            return self.fallback(query, category=category, max_results=max_results, language=language, region=region)
        except Exception as e:
            logger.warning(f"{self.provider_id}: search failed ({type(e).__name__}: {e}), returning synthetic results")
            return self.fallback(query, category=category, max_results=max_results, language=language, region=region)

        if not items and self._fallback_on_empty:
            logger.info(f"{self.provider_id}: no results for {query!r}, returning synthetic results")
            return self.fallback(query, category=category, max_results=max_results, language=language, region=region)
        return items[:max_results]

    def enhance_query(self, query: str, region: str | None, category: str | None) -> str:
        """Rewrite the query for this source; identity by default."""
        return query

    async def suggestions(self, query: str) -> list[str]:
        """Cheap suggestion phrases for ``query``; none by default."""
        return []

    def fallback(
        self,
        query: str,
        category: str | None = None,
        max_results: int = 10,
        language: str = "es",
        region: str = Region.LOCAL.value,
    ) -> list[ContentItem]:
        """
        Synthetic, clearly lower-confidence items for ``query``.

        Scored by the same model as real items (including the regional
        affinity bonus for local requests), minus SYNTHETIC_PENALTY.
        """
        template = self.synthetic_template()
        items = self._generator.generate(
            template,
            query=query,
            count=max_results,
            category=category,
            language=language,
        )
        now = self._generator.now()
        scored = []
        for item in items:
            score = self.score_item(item, query, self.scoring_context(now, item), region)
            scored.append(item.with_score(clamp_score(score - SYNTHETIC_PENALTY)))
        return scored

    async def close(self) -> None:
        """Release network resources, if any."""
        return None

    # -------------------------------------------------------------------------
    # Scoring hooks
    # -------------------------------------------------------------------------

    def scoring_context(self, now: datetime, item: ContentItem | None = None) -> ScoringContext:
        """Scoring parameters for this provider; ``item`` enables per-item bonuses."""
        return ScoringContext(now=now)

    def score_item(
        self,
        item: ContentItem,
        query: str,
        context: ScoringContext | None = None,
        region: str = Region.LOCAL.value,
    ) -> float:
        """Base model score plus, for local requests, the regional-affinity bonus; clamped."""
        context = context or self.scoring_context(self.now(), item)
        score = self._scorer.score(item, query, context)
        if self.affinity_per_match and region == Region.LOCAL.value:
            matches = self._classifier.local_matches(item.title, item.summary, item.source_name, item.author)
            score += affinity_bonus(matches, self.affinity_per_match)
        return clamp_score(score)

    # -------------------------------------------------------------------------
    # Variant hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _fetch(
        self,
        query: str,
        *,
        category: str | None,
        max_results: int,
        language: str,
        region: str,
    ) -> list[ContentItem]:
        """Retrieve and score real items. May raise; ``search`` recovers."""

    @abstractmethod
    def synthetic_template(self) -> SyntheticTemplate:
        """Shape of this provider's fallback items."""
