"""
Synthetic content generator for provider fallbacks.

When a provider is unconfigured, disabled, failing or returns nothing, it
answers with plausible placeholder items built from a SyntheticTemplate.
Every generated item carries ``synthetic=True`` and never ``priority_source``.

The generator is an injectable dependency: randomness comes from a
``random.Random`` seeded with (seed, provider id, query) and time from an
injectable clock, so identical requests produce identical fallback content
and tests can assert exact items.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from civic_search.domain.entities.content import (
    ContentItem,
    ContentKind,
    EngagementCounters,
    Region,
)


@dataclass(frozen=True)
class SyntheticTemplate:
    """
    Shape of one provider's fallback items.

    ``title_format``, ``summary_format`` and ``url_format`` accept the
    placeholders {query}, {source}, {angle}, {index}, {number} (index + 1)
    and {provider_id}.
    """

    provider_id: str
    kind: ContentKind
    source_names: tuple[str, ...]
    local_sources: frozenset[str] = frozenset()
    title_format: str = "{query} - {source}"
    summary_format: str = "Contenido sobre {query} presentado por {source}."
    url_format: str = "https://example.org/{provider_id}/{index}"
    local_angle: str = "Perspectiva Colombia"
    foreign_angle: str = "Cobertura Internacional"
    tags: tuple[str, ...] = ()
    max_items: int = 6
    spacing: timedelta = timedelta(hours=1)
    default_category: str = "politica"
    default_region: Region = Region.INTERNATIONAL
    views_range: tuple[int, int] | None = None
    likes_range: tuple[int, int] | None = None
    comments_range: tuple[int, int] | None = None
    verified_local: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)


class SyntheticContentGenerator:
    """
    Builds deterministic fallback items.

    Usage:
        generator = SyntheticContentGenerator(seed=7, clock=lambda: fixed_now)
        items = generator.generate(template, query="reforma", count=4)
    """

    def __init__(
        self,
        seed: int = 0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._seed = seed
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def now(self) -> datetime:
        return self._clock()

    def _rng(self, template: SyntheticTemplate, query: str) -> random.Random:
        return random.Random(f"{self._seed}:{template.provider_id}:{query.casefold()}")

    @staticmethod
    def _draw(rng: random.Random, bounds: tuple[int, int] | None) -> int | None:
        if bounds is None:
            return None
        low, high = bounds
        return rng.randint(low, high)

    def generate(
        self,
        template: SyntheticTemplate,
        *,
        query: str,
        count: int,
        category: str | None = None,
        language: str = "es",
    ) -> list[ContentItem]:
        """Generate ``min(count, template.max_items)`` items (at least one)."""
        query = query.strip()
        total = max(1, min(count, template.max_items))
        rng = self._rng(template, query)
        now = self._clock()
        sources = template.source_names or (template.provider_id,)

        items: list[ContentItem] = []
        for index in range(total):
            source = sources[index % len(sources)]
            is_local = source in template.local_sources
            region = Region.LOCAL if is_local else template.default_region
            fields = {
                "query": query,
                "source": source,
                "angle": template.local_angle if is_local else template.foreign_angle,
                "index": index,
                "number": index + 1,
                "provider_id": template.provider_id,
            }
            tags = {query.casefold(), *template.tags}
            tags.add("colombia" if region is Region.LOCAL else "internacional")

            items.append(
                ContentItem(
                    id=f"{template.provider_id}:synthetic:{index}",
                    kind=template.kind,
                    title=template.title_format.format(**fields),
                    summary=template.summary_format.format(**fields),
                    source_name=source,
                    source_provider_id=template.provider_id,
                    timestamp=now - template.spacing * index,
                    region=region,
                    engagement=EngagementCounters(
                        views=self._draw(rng, template.views_range),
                        likes=self._draw(rng, template.likes_range),
                        comments=self._draw(rng, template.comments_range),
                    ),
                    url=template.url_format.format(**fields),
                    tags=frozenset(tags),
                    category=category or template.default_category,
                    author=source,
                    language=language,
                    verified=template.verified_local and is_local,
                    synthetic=True,
                    extra=template.extra,
                )
            )
        return items
