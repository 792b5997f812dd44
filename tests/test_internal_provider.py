"""Tests for internal entity providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from civic_search.domain.entities.content import ContentKind, Region
from civic_search.infrastructure.entities import EntityKind
from civic_search.infrastructure.providers.base import SYNTHETIC_PENALTY
from civic_search.infrastructure.providers.internal import InternalEntityProvider


@pytest.fixture
def posts(store, generator):
    return InternalEntityProvider(EntityKind.POST, store, generator)


@pytest.fixture
def users(store, generator):
    return InternalEntityProvider(EntityKind.USER, store, generator)


class TestIdentity:
    def test_ids_and_kinds(self, store, generator):
        reels = InternalEntityProvider(EntityKind.REEL, store, generator)
        assert reels.provider_id == "internal_reels"
        assert reels.kinds == frozenset({ContentKind.VIDEO})
        assert reels.entity_kind is EntityKind.REEL
        assert reels.enabled

    def test_repr(self, posts):
        assert repr(posts) == "InternalEntityProvider('internal_posts', enabled)"


class TestSearch:
    @pytest.mark.asyncio
    async def test_post_result(self, posts):
        items = await posts.search("reforma", max_results=5)
        assert len(items) == 1
        item = items[0]
        assert item.id == "internal_posts:p-1"
        assert item.kind is ContentKind.POST
        assert item.region is Region.LOCAL
        assert not item.synthetic
        assert item.title.startswith("La reforma pensional llega al Senado")
        assert item.url == "/posts/p-1"
        assert {"reforma pensional", "senado"} <= item.tags
        # title 10 + summary 5 + body 3 + likes 5 + comments 3 + recency 3
        assert item.relevance_score == 29.0

    @pytest.mark.asyncio
    async def test_user_result(self, users):
        items = await users.search("reforma", max_results=5)
        assert [i.id for i in items] == ["internal_users:u-2"]
        user = items[0]
        assert user.kind is ContentKind.USER
        assert user.handle == "laura_reforma"
        assert user.title == "Laura Reformista"
        # title 10 + summary 5 + handle 8
        assert user.relevance_score == 23.0

    @pytest.mark.asyncio
    async def test_max_results(self, posts):
        assert len(await posts.search("a", max_results=1)) == 1


class TestFallback:
    @pytest.mark.asyncio
    async def test_no_match_returns_synthetic(self, posts):
        items = await posts.search("xyznonexistent123", max_results=2)
        assert len(items) == 2
        assert all(i.synthetic for i in items)
        assert all(i.region is Region.LOCAL for i in items)
        assert not any(i.priority_source for i in items)
        assert items[0].title == "Conversación ciudadana 1: xyznonexistent123"
        assert items[0].source_provider_id == "internal_posts"

    @pytest.mark.asyncio
    async def test_fallback_capped_at_template_size(self, posts):
        assert len(await posts.search("xyznonexistent123", max_results=10)) == 3

    @pytest.mark.asyncio
    async def test_synthetic_scores_penalized(self, posts):
        for item in await posts.search("xyznonexistent123", max_results=3):
            # title 10 + summary 5 + recency 3 + likes <= 5, minus the penalty
            assert 0 <= item.relevance_score <= 23 - SYNTHETIC_PENALTY

    @pytest.mark.asyncio
    async def test_no_fallback_when_disabled(self, store, generator):
        provider = InternalEntityProvider(EntityKind.POST, store, generator, fallback_on_empty=False)
        assert await provider.search("xyznonexistent123") == []

    @pytest.mark.asyncio
    async def test_lookup_failure_returns_synthetic(self, generator):
        lookup = MagicMock()
        lookup.search = AsyncMock(side_effect=RuntimeError("database down"))
        provider = InternalEntityProvider(EntityKind.NEWS_TOPIC, lookup, generator)
        items = await provider.search("reforma", max_results=2)
        assert len(items) == 2
        assert all(i.synthetic and i.kind is ContentKind.NEWS for i in items)

    @pytest.mark.asyncio
    async def test_fallback_is_deterministic(self, posts):
        first = await posts.search("xyznonexistent123", max_results=3)
        second = await posts.search("xyznonexistent123", max_results=3)
        assert [i.to_dict() for i in first] == [i.to_dict() for i in second]
