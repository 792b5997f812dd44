"""Tests for concurrent fan-out, merge, prioritization and pagination."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from civic_search.application.search.aggregator import (
    SearchAggregator,
    deduplicate,
    normalized_title,
    provider_share,
)
from civic_search.application.search.regional import RegionalPrioritizer
from civic_search.core.exceptions import AggregationError
from civic_search.domain.entities.content import ContentKind, Region, SearchRequest, SortOrder, TypeFilter

# ============================================================
# Helpers
# ============================================================


class TestProviderShare:
    def test_all_gets_quarter_page(self):
        assert provider_share(TypeFilter.ALL, 1, 8) == 2
        assert provider_share(TypeFilter.ALL, 1, 10) == 2
        assert provider_share(TypeFilter.ALL, 1, 3) == 1

    def test_specific_filter_fills_page(self):
        assert provider_share(TypeFilter.NEWS, 2, 10) == 20
        assert provider_share(TypeFilter.USERS, 1, 5) == 5


class TestDeduplicate:
    def test_same_id(self, make_item):
        assert [i.id for i in deduplicate([make_item("a"), make_item("a", title="Other")])] == ["a"]

    def test_same_url(self, make_item):
        items = [make_item("a", url="https://x.test/1/"), make_item("b", url="HTTPS://X.TEST/1")]
        assert [i.id for i in deduplicate(items)] == ["a"]

    def test_same_normalized_title(self, make_item):
        items = [make_item("a", title="Reforma, pensional!"), make_item("b", title="reforma   PENSIONAL")]
        assert [i.id for i in deduplicate(items)] == ["a"]

    def test_distinct_kept(self, make_item):
        assert len(deduplicate([make_item("a"), make_item("b")])) == 2

    def test_normalized_title(self):
        assert normalized_title("  ¡Reforma—pensional!  ") == "reforma pensional"


# ============================================================
# Aggregation
# ============================================================


def news_items(make_item, count, *, prefix="n", region=Region.INTERNATIONAL):
    return [make_item(f"{prefix}{i}", score=float(100 - i), region=region) for i in range(count)]


class TestSearchAggregator:
    def test_select_providers(self, make_provider):
        news = make_provider("news", ContentKind.NEWS)
        video = make_provider("video", ContentKind.VIDEO)
        users = make_provider("users", ContentKind.USER)
        aggregator = SearchAggregator([news, video, users])
        assert aggregator.select_providers(TypeFilter.NEWS) == [news]
        assert aggregator.select_providers(TypeFilter.REELS) == [video]
        assert aggregator.select_providers(TypeFilter.ALL) == [news, video, users]

    @pytest.mark.asyncio
    async def test_all_filter_asks_quarter_page(self, make_provider, make_item):
        news = make_provider("news", ContentKind.NEWS, news_items(make_item, 5))
        users = make_provider("users", ContentKind.USER, [make_item("u", kind=ContentKind.USER)])
        await SearchAggregator([news, users]).aggregate(SearchRequest(query="q", page_size=8))
        assert news.calls[0]["max_results"] == 2
        assert users.calls[0]["max_results"] == 2

    @pytest.mark.asyncio
    async def test_specific_filter_pagination(self, make_provider, make_item):
        news = make_provider("news", ContentKind.NEWS, news_items(make_item, 25))
        result = await SearchAggregator([news]).aggregate(
            SearchRequest(query="q", type_filter=TypeFilter.NEWS, page=2, page_size=10)
        )
        assert news.calls[0]["max_results"] == 20
        assert result.total == 20
        assert [i.id for i in result.items] == [f"n{i}" for i in range(10, 20)]

    @pytest.mark.asyncio
    async def test_page_never_exceeds_page_size(self, make_provider, make_item):
        providers = [
            make_provider(f"p{n}", ContentKind.NEWS, news_items(make_item, 10, prefix=f"p{n}-")) for n in range(4)
        ]
        result = await SearchAggregator(providers).aggregate(SearchRequest(query="q", page_size=3))
        assert len(result.items) <= 3

    @pytest.mark.asyncio
    async def test_providers_run_concurrently(self, make_provider, make_item):
        providers = [
            make_provider(f"p{n}", ContentKind.NEWS, [make_item(f"i{n}")], delay=0.2) for n in range(3)
        ]
        start = time.perf_counter()
        result = await SearchAggregator(providers).aggregate(SearchRequest(query="q"))
        assert time.perf_counter() - start < 0.5
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_timeout_substitutes_fallback(self, make_provider, make_item):
        fast = make_provider("fast", ContentKind.NEWS, [make_item("real", score=40)])
        slow = make_provider("slow", ContentKind.NEWS, [make_item("late")], delay=2.0)
        aggregator = SearchAggregator([fast, slow], provider_timeout=0.05)

        result = await aggregator.aggregate(SearchRequest(query="reforma", page_size=8))

        stats = {s.provider_id: s for s in result.provider_stats}
        assert stats["slow"].timed_out
        assert stats["slow"].synthetic
        assert not stats["fast"].timed_out
        ids = {i.id for i in result.items}
        assert "real" in ids
        assert "late" not in ids
        assert any(i.synthetic and i.source_provider_id == "slow" for i in result.items)

    @pytest.mark.asyncio
    async def test_failing_provider_falls_back(self, make_provider):
        broken = make_provider("broken", ContentKind.NEWS, error=RuntimeError("boom"))
        result = await SearchAggregator([broken]).aggregate(SearchRequest(query="reforma"))
        assert result.total > 0
        assert result.provider_stats[0].synthetic

    @pytest.mark.asyncio
    async def test_duplicates_keep_best_copy(self, make_provider, make_item):
        low = make_provider("low", ContentKind.NEWS, [make_item("low:1", score=40, url="https://x.test/a")])
        high = make_provider("high", ContentKind.NEWS, [make_item("high:1", score=80, url="https://x.test/a")])
        result = await SearchAggregator([low, high]).aggregate(SearchRequest(query="q"))
        assert [i.id for i in result.items] == ["high:1"]

    @pytest.mark.asyncio
    async def test_regional_prioritization(self, make_provider, make_item):
        items = [
            make_item("intl", score=95),
            make_item("regional", score=80, region=Region.REGIONAL),
            make_item("local", score=50, region=Region.LOCAL),
        ]
        provider = make_provider("news", ContentKind.NEWS, items)
        aggregator = SearchAggregator([provider])
        request = SearchRequest(query="q", type_filter=TypeFilter.NEWS)

        local = await aggregator.aggregate(request)
        assert [i.id for i in local.items] == ["local", "regional", "intl"]

        world = await aggregator.aggregate(SearchRequest(query="q", type_filter=TypeFilter.NEWS, region="world"))
        assert [i.id for i in world.items] == ["intl", "regional", "local"]

    @pytest.mark.asyncio
    async def test_mismatched_kinds_filtered(self, make_provider, make_item):
        provider = make_provider(
            "posts",
            ContentKind.POST,
            [make_item("post", kind=ContentKind.POST), make_item("stray", kind=ContentKind.NEWS)],
        )
        result = await SearchAggregator([provider]).aggregate(SearchRequest(query="q", type_filter=TypeFilter.POSTS))
        assert [i.id for i in result.items] == ["post"]

    @pytest.mark.asyncio
    async def test_scores_clamped(self, make_provider, make_item):
        provider = make_provider("news", ContentKind.NEWS, [make_item("hot", score=150)])
        result = await SearchAggregator([provider]).aggregate(SearchRequest(query="q"))
        assert result.items[0].relevance_score == 100.0

    @pytest.mark.asyncio
    async def test_total_capped(self, make_provider, make_item):
        provider = make_provider("news", ContentKind.NEWS, news_items(make_item, 10))
        aggregator = SearchAggregator([provider], max_total_results=5)
        result = await aggregator.aggregate(SearchRequest(query="q", type_filter=TypeFilter.NEWS))
        assert result.total == 5

    @pytest.mark.asyncio
    async def test_idempotent(self, aggregator):
        request = SearchRequest(query="reforma", page_size=8)
        first = await aggregator.aggregate(request)
        second = await aggregator.aggregate(request)
        assert [i.id for i in first.items] == [i.id for i in second.items]
        assert first.total == second.total

    @pytest.mark.asyncio
    async def test_external_disabled_still_returns_results(self, aggregator):
        result = await aggregator.aggregate(SearchRequest(query="xyznonexistent123"))
        assert result.total > 0
        assert all(i.synthetic for i in result.items)

    @pytest.mark.asyncio
    async def test_merge_failure_wrapped(self, make_provider, make_item):
        prioritizer = MagicMock(spec=RegionalPrioritizer)
        prioritizer.prioritize.side_effect = RuntimeError("bad sort")
        provider = make_provider("news", ContentKind.NEWS, [make_item("a")])
        with pytest.raises(AggregationError):
            await SearchAggregator([provider], prioritizer=prioritizer).aggregate(SearchRequest(query="q"))

    @pytest.mark.asyncio
    async def test_no_matching_providers(self, make_provider):
        aggregator = SearchAggregator([make_provider("news", ContentKind.NEWS)])
        result = await aggregator.aggregate(SearchRequest(query="q", type_filter=TypeFilter.USERS))
        assert result.items == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, make_provider, make_item):
        slow = make_provider("slow", ContentKind.NEWS, [make_item("late")], delay=5.0)
        task = asyncio.create_task(SearchAggregator([slow]).aggregate(SearchRequest(query="q")))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(slow.calls) == 1
        assert slow.completed == 0


# ============================================================
# Category filter / sort order
# ============================================================


def categorized_items(make_item):
    return [
        make_item("politics", score=60, hours_ago=5, category="Política"),
        make_item("sports", score=90, hours_ago=30, category="deportes"),
        make_item("economy", score=40, hours_ago=1, category="economia"),
        make_item("politics-local", score=30, hours_ago=10, region=Region.LOCAL, category="politica"),
    ]


class TestCategoriesAndSorting:
    @pytest.fixture
    def aggregator(self, make_provider, make_item):
        return SearchAggregator([make_provider("news", ContentKind.NEWS, categorized_items(make_item))])

    @pytest.mark.asyncio
    async def test_categories_cover_all_results(self, aggregator):
        request = SearchRequest(query="q", type_filter=TypeFilter.NEWS, page=2, page_size=2)
        result = await aggregator.aggregate(request)
        assert [i.id for i in result.items] == ["politics", "economy"]
        assert result.categories == ["deportes", "economia", "Política", "politica"]

    @pytest.mark.asyncio
    async def test_category_filter_ignores_case_and_accents(self, aggregator):
        request = SearchRequest(query="q", type_filter=TypeFilter.NEWS, category="politica")
        result = await aggregator.aggregate(request)
        assert [i.id for i in result.items] == ["politics-local", "politics"]
        assert result.total == 2
        assert "deportes" in result.categories

    @pytest.mark.asyncio
    async def test_unmatched_category_is_empty(self, aggregator):
        result = await aggregator.aggregate(SearchRequest(query="q", type_filter=TypeFilter.NEWS, category="salud"))
        assert result.items == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_sort_by_date(self, aggregator):
        request = SearchRequest(query="q", type_filter=TypeFilter.NEWS, sort_by=SortOrder.DATE)
        result = await aggregator.aggregate(request)
        assert [i.id for i in result.items] == ["economy", "politics", "politics-local", "sports"]

    @pytest.mark.asyncio
    async def test_sort_by_category(self, aggregator):
        request = SearchRequest(query="q", type_filter=TypeFilter.NEWS, sort_by=SortOrder.CATEGORY)
        result = await aggregator.aggregate(request)
        assert [i.id for i in result.items] == ["sports", "economy", "politics", "politics-local"]

    @pytest.mark.asyncio
    async def test_relevance_keeps_regional_buckets(self, aggregator):
        result = await aggregator.aggregate(SearchRequest(query="q", type_filter=TypeFilter.NEWS))
        assert [i.id for i in result.items] == ["politics-local", "sports", "politics", "economy"]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("DATE", SortOrder.DATE), (" category ", SortOrder.CATEGORY), ("views", SortOrder.RELEVANCE), (None, SortOrder.RELEVANCE)],
    )
    def test_sort_order_coerce(self, value, expected):
        assert SortOrder.coerce(value) is expected
