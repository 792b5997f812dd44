"""
Search Aggregator - concurrent fan-out, merge, prioritize, paginate.

Flow:
    1. Select the providers whose kinds intersect the type filter
    2. Ask each for its share (a quarter of the page for ``all``,
       ``page * page_size`` for a specific filter) concurrently, each under
       its own timeout; a timed-out provider is replaced by its fallback list
    3. Merge (order-independent), drop duplicates, finalize items
    4. Keep the requested category, if any
    5. Regional prioritization (or plain score ordering) for ``relevance``;
       newest-first or alphabetical-by-category for the other sort orders
    6. Slice the requested page

Provider failures never reach this layer: providers recover internally and
the timeout path substitutes the provider's fallback. Anything else that
goes wrong here is wrapped in AggregationError.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from civic_search.application.search.normalizer import RecordNormalizer
from civic_search.application.search.regional import RegionalPrioritizer
from civic_search.application.search.relevance import sort_by_relevance, sort_items
from civic_search.core.async_utils import timeout_with_fallback
from civic_search.core.exceptions import AggregationError
from civic_search.domain.entities.content import SortOrder, TypeFilter, category_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from civic_search.domain.entities.content import ContentItem, SearchRequest
    from civic_search.infrastructure.providers.base import ContentProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOTAL_RESULTS = 2000

_TITLE_NOISE_RE = re.compile(r"[^\w]+")


@dataclass(frozen=True)
class ProviderStats:
    """How one provider contributed to an aggregation."""

    provider_id: str
    count: int
    synthetic: bool
    elapsed_ms: float
    timed_out: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "providerId": self.provider_id,
            "count": self.count,
            "synthetic": self.synthetic,
            "elapsedMs": round(self.elapsed_ms, 1),
            "timedOut": self.timed_out,
        }


@dataclass(frozen=True)
class AggregationResult:
    """Page of items plus the merged total and categories before pagination."""

    items: list[ContentItem]
    total: int
    provider_stats: list[ProviderStats] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)


def provider_share(type_filter: TypeFilter, page: int, page_size: int) -> int:
    """
    How many items each selected provider is asked for.

    ``all``: a quarter of the page (floor, at least one) for diversity across
    kinds. Specific filter: enough items to fill the requested page after the
    global sort.
    """
    if type_filter is TypeFilter.ALL:
        return max(1, page_size // 4)
    return page * page_size


def normalized_title(title: str) -> str:
    return _TITLE_NOISE_RE.sub(" ", title.casefold()).strip()


def deduplicate(items: Iterable[ContentItem]) -> list[ContentItem]:
    """Keep the first item per id, per URL and per normalized title."""
    seen_ids: set[str] = set()
    seen_urls: set[str] = set()
    seen_titles: set[str] = set()
    unique: list[ContentItem] = []
    for item in items:
        url = item.url.strip().rstrip("/").casefold()
        title = normalized_title(item.title)
        if item.id in seen_ids or (url and url in seen_urls) or (title and title in seen_titles):
            continue
        seen_ids.add(item.id)
        if url:
            seen_urls.add(url)
        if title:
            seen_titles.add(title)
        unique.append(item)
    return unique


class SearchAggregator:
    """
    Fans a SearchRequest out to content providers and merges the results.

    Usage:
        aggregator = SearchAggregator(providers)
        result = await aggregator.aggregate(SearchRequest(query="reforma", page_size=8))
    """

    def __init__(
        self,
        providers: Sequence[ContentProvider],
        *,
        prioritizer: RegionalPrioritizer | None = None,
        normalizer: RecordNormalizer | None = None,
        provider_timeout: float | None = None,
        max_total_results: int = DEFAULT_MAX_TOTAL_RESULTS,
    ):
        self._providers = list(providers)
        self._prioritizer = prioritizer or RegionalPrioritizer()
        self._normalizer = normalizer or RecordNormalizer()
        self._provider_timeout = provider_timeout
        self._max_total_results = max_total_results

    @property
    def providers(self) -> list[ContentProvider]:
        return list(self._providers)

    def select_providers(self, type_filter: TypeFilter) -> list[ContentProvider]:
        wanted = type_filter.kinds
        return [p for p in self._providers if p.kinds & wanted]

    async def aggregate(self, request: SearchRequest) -> AggregationResult:
        """Run one aggregation. Raises AggregationError for failures outside providers."""
        providers = self.select_providers(request.type_filter)
        share = provider_share(request.type_filter, request.page, request.page_size)

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self._call_provider(p, request, share)) for p in providers]
        except ExceptionGroup as eg:
            logger.error(f"Provider fan-out failed for {request.query!r}: {eg.exceptions!r}")
            raise AggregationError() from eg
        outcomes = [task.result() for task in tasks]

        try:
            return self._merge(request, outcomes)
        except Exception as e:
            logger.exception(f"Aggregation failed for {request.query!r}: {e}")
            raise AggregationError() from e

    async def _call_provider(
        self,
        provider: ContentProvider,
        request: SearchRequest,
        share: int,
    ) -> tuple[list[ContentItem], ProviderStats]:
        timeout = self._provider_timeout if self._provider_timeout is not None else provider.timeout
        timed_out = False

        def on_timeout() -> list[ContentItem]:
            nonlocal timed_out
            timed_out = True
            logger.warning(f"{provider.provider_id}: timed out after {timeout:.1f}s, using synthetic results")
            return provider.fallback(
                request.query,
                category=request.category,
                max_results=share,
                language=request.language,
                region=request.region,
            )

        started = time.perf_counter()
        items = await timeout_with_fallback(
            provider.search(
                request.query,
                category=request.category,
                max_results=share,
                language=request.language,
                region=request.region,
            ),
            timeout,
            on_timeout,
        )
        elapsed_ms = (time.perf_counter() - started) * 1000
        stats = ProviderStats(
            provider_id=provider.provider_id,
            count=len(items),
            synthetic=bool(items) and all(item.synthetic for item in items),
            elapsed_ms=elapsed_ms,
            timed_out=timed_out,
        )
        logger.debug(f"{provider.provider_id}: {stats.count} items in {elapsed_ms:.0f}ms")
        return items, stats

    def _merge(
        self,
        request: SearchRequest,
        outcomes: list[tuple[list[ContentItem], ProviderStats]],
    ) -> AggregationResult:
        wanted = request.type_filter.kinds
        merged = [
            self._normalizer.finalize(item)
            for items, _ in outcomes
            for item in items
            if item.kind in wanted
        ]
        # Best-ranked copy of a duplicate wins, whatever the provider order
        unique = deduplicate(sort_by_relevance(merged))
        categories = sorted({item.category for item in unique}, key=lambda c: (category_key(c), c))
        if request.category:
            wanted_category = category_key(request.category)
            unique = [item for item in unique if category_key(item.category) == wanted_category]

        if request.sort_by is SortOrder.RELEVANCE:
            ordered = self._prioritizer.prioritize(unique, request.region)
        else:
            ordered = sort_items(unique, request.sort_by)
        ordered = ordered[: self._max_total_results]

        page = ordered[request.skip : request.skip + request.page_size]
        stats = [s for _, s in outcomes]
        logger.info(
            f"Search {request.query!r} ({request.type_filter.value}, {request.sort_by.value}): "
            f"{len(ordered)} merged from {len(outcomes)} providers, returning {len(page)}"
        )
        return AggregationResult(items=page, total=len(ordered), provider_stats=stats, categories=categories)
