"""
Search Facade - request validation and response envelope.

Two entry points:
    search()       validated, aggregated, paginated results
    suggestions()  cheap suggestions (users, tags, categories, provider phrases)

plus ``popular_queries()`` for the trending list.

Validation happens before any provider is invoked: an empty or blank query
raises InvalidQueryError, an unknown type filter raises
InvalidParameterError. Pagination values are coerced rather than rejected,
an unknown sort order falls back to relevance and "todos" (all categories)
means no category filter.
"""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from civic_search.core.async_utils import gather_with_errors
from civic_search.core.exceptions import InvalidParameterError, InvalidQueryError
from civic_search.domain.entities.content import SearchRequest, SortOrder, TypeFilter
from civic_search.shared.settings import DEFAULT_POPULAR_QUERIES

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civic_search.application.search.aggregator import ProviderStats, SearchAggregator
    from civic_search.domain.entities.content import ContentItem
    from civic_search.infrastructure.entities import EntityLookup

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
SUGGESTION_LIMIT = 5
MIN_SUGGESTION_LENGTH = 2
# Category values meaning "no category filter"
ALL_CATEGORIES = frozenset({"all", "todos", "todas"})

_TERM_RE = re.compile(r"\w+")


def coerce_positive_int(value: Any, default: int) -> int:
    """
    Coerce ``value`` to a positive int; invalid, zero or negative -> ``default``.

    Integral floats ("2.0", 2.0) are accepted; fractional ones are not.

    >>> coerce_positive_int("3", 1)
    3
    >>> coerce_positive_int("2.0", 1)
    2
    >>> coerce_positive_int("abc", 10)
    10
    >>> coerce_positive_int(-2, 10)
    10
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or not number.is_integer() or number < 1:
        return default
    return int(number)


def normalize_category(category: Any) -> str | None:
    """Lowercased category, or None for blank values and the "all categories" aliases."""
    if not isinstance(category, str) or not category.strip():
        return None
    value = category.strip().lower()
    return None if value in ALL_CATEGORIES else value


def query_terms(query: str) -> list[str]:
    """Distinct lowercase terms of more than two characters."""
    return list(dict.fromkeys(t for t in _TERM_RE.findall(query.casefold()) if len(t) > 2))


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int
    has_next_page: bool
    has_prev_page: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "total": self.total,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


@dataclass(frozen=True)
class SearchResponse:
    """Envelope returned by SearchFacade.search."""

    query: str
    type_filter: TypeFilter
    total: int
    items: list[ContentItem]
    pagination: Pagination
    region: str = "local"
    search_time_ms: float = 0.0
    provider_stats: list[ProviderStats] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    sort_by: SortOrder = SortOrder.RELEVANCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "typeFilter": self.type_filter.value,
            "total": self.total,
            "items": [item.to_dict() for item in self.items],
            "pagination": self.pagination.to_dict(),
            "metadata": {
                "categories": self.categories,
                "queryTerms": query_terms(self.query),
                "region": self.region,
                "sortBy": self.sort_by.value,
                "providerStats": [s.to_dict() for s in self.provider_stats],
                "searchTimeMs": round(self.search_time_ms, 1),
            },
        }


class SearchFacade:
    """
    Entry point used by the HTTP layer.

    Usage:
        facade = SearchFacade(aggregator, lookup)
        response = await facade.search("reforma", type_filter="all", page=1, page_size=8)
        suggestions = await facade.suggestions("re")
    """

    def __init__(
        self,
        aggregator: SearchAggregator,
        lookup: EntityLookup,
        *,
        max_page_size: int = MAX_PAGE_SIZE,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        suggestion_limit: int = SUGGESTION_LIMIT,
        min_suggestion_length: int = MIN_SUGGESTION_LENGTH,
        popular_queries: Sequence[str] = DEFAULT_POPULAR_QUERIES,
    ):
        self._aggregator = aggregator
        self._lookup = lookup
        self._max_page_size = max_page_size
        self._default_page_size = default_page_size
        self._suggestion_limit = suggestion_limit
        self._min_suggestion_length = min_suggestion_length
        self._popular_queries = list(popular_queries)

    @property
    def aggregator(self) -> SearchAggregator:
        return self._aggregator

    # =========================================================================
    # Search
    # =========================================================================

    def build_request(
        self,
        query: Any,
        type_filter: Any = TypeFilter.ALL.value,
        page: Any = DEFAULT_PAGE,
        page_size: Any = DEFAULT_PAGE_SIZE,
        region: str | None = None,
        category: str | None = None,
        language: str = "es",
        sort_by: Any = SortOrder.RELEVANCE.value,
    ) -> SearchRequest:
        """Validate and coerce raw parameters into a SearchRequest."""
        if not isinstance(query, str) or not query.strip():
            raise InvalidQueryError(query if isinstance(query, str) else None)

        try:
            type_value = TypeFilter(str(type_filter or TypeFilter.ALL.value).strip().lower())
        except ValueError:
            raise InvalidParameterError(
                "type",
                type_filter,
                "one of " + ", ".join(t.value for t in TypeFilter),
            ) from None

        size = min(coerce_positive_int(page_size, self._default_page_size), self._max_page_size)
        return SearchRequest(
            query=query.strip(),
            type_filter=type_value,
            page=coerce_positive_int(page, DEFAULT_PAGE),
            page_size=size,
            region=(region or "local").strip().lower(),
            category=normalize_category(category),
            language=language or "es",
            sort_by=SortOrder.coerce(sort_by),
        )

    async def search(
        self,
        query: Any,
        type_filter: Any = TypeFilter.ALL.value,
        page: Any = DEFAULT_PAGE,
        page_size: Any = DEFAULT_PAGE_SIZE,
        region: str | None = None,
        category: str | None = None,
        language: str = "es",
        sort_by: Any = SortOrder.RELEVANCE.value,
    ) -> SearchResponse:
        """
        Validate, aggregate and wrap one search.

        Raises:
            InvalidQueryError: empty or blank query (before any provider runs)
            InvalidParameterError: unknown type filter
            AggregationError: unexpected failure outside the providers
        """
        request = self.build_request(query, type_filter, page, page_size, region, category, language, sort_by)
        started = time.perf_counter()
        result = await self._aggregator.aggregate(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        pagination = Pagination(
            page=request.page,
            page_size=request.page_size,
            total=result.total,
            has_next_page=len(result.items) == request.page_size,
            has_prev_page=request.page > 1,
        )
        return SearchResponse(
            query=request.query,
            type_filter=request.type_filter,
            total=result.total,
            items=result.items,
            pagination=pagination,
            region=request.region,
            search_time_ms=elapsed_ms,
            provider_stats=result.provider_stats,
            categories=result.categories,
            sort_by=request.sort_by,
        )

    # =========================================================================
    # Suggestions
    # =========================================================================

    async def suggestions(self, query: Any) -> list[dict[str, Any]]:
        """
        Flat suggestion list: users, then tags, then categories, then query
        phrases offered by the content providers.

        Queries shorter than the minimum length (after trimming) return [].
        A failing source is skipped; the others still contribute. Each source
        contributes at most ``suggestion_limit`` entries; provider phrases are
        merged into one source without case-insensitive duplicates.
        """
        if not isinstance(query, str) or len(query.strip()) < self._min_suggestion_length:
            return []
        needle = query.strip()
        limit = self._suggestion_limit
        providers = self._aggregator.providers

        users, tags, categories, *phrases = await gather_with_errors(
            self._lookup.suggest_users(needle, limit),
            self._lookup.suggest_tags(needle, limit),
            self._lookup.suggest_categories(needle, limit),
            *(provider.suggestions(needle) for provider in providers),
            return_exceptions=True,
        )

        suggestions: list[dict[str, Any]] = []
        for source, result in (("user", users), ("tag", tags), ("category", categories)):
            if isinstance(result, Exception):
                logger.warning(f"Suggestion source '{source}' failed: {result}")
                continue
            for entry in result[:limit]:
                if isinstance(entry, dict):
                    suggestions.append({"type": source, **entry})
                else:
                    suggestions.append({"type": source, "value": entry})

        seen: set[str] = set()
        queries: list[str] = []
        for provider, result in zip(providers, phrases, strict=True):
            if isinstance(result, Exception):
                logger.warning(f"Suggestion source '{provider.provider_id}' failed: {result}")
                continue
            for phrase in result:
                if phrase.casefold() not in seen:
                    seen.add(phrase.casefold())
                    queries.append(phrase)
        suggestions.extend({"type": "query", "value": phrase} for phrase in queries[:limit])
        return suggestions

    def popular_queries(self) -> list[str]:
        return list(self._popular_queries)
