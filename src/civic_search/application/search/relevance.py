"""
Relevance Scorer - additive, bounded relevance model.

score = base
      + query match bonuses (title +10, summary +5, body +3, handle +8)
      + verified / featured +2
      + engagement: min(likes/10, 5) + min(views/100, 3) + min(comments/5, 3)
      + recency bonus (provider-specific thresholds)
      + provider bonus (trusted source, priority channel, coverage...)
clamped to [0, 100].

The regional-affinity bonus is NOT part of ``score``: providers add it in a
separate pass with ``affinity_bonus`` so region stays usable for grouping
independently of the numeric score.

Architecture:
    RelevanceScorer is stateless and side-effect free. Everything that
    varies per provider (base score, recency thresholds, extra bonus, clock)
    travels in a ScoringContext.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from civic_search.domain.entities.content import SortOrder, category_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from civic_search.domain.entities.content import ContentItem

MIN_SCORE = 0.0
MAX_SCORE = 100.0


# =============================================================================
# Scoring configuration
# =============================================================================


@dataclass(frozen=True)
class MatchWeights:
    """Bonuses for a case-insensitive substring match of the query."""

    title: float = 10.0
    summary: float = 5.0
    body: float = 3.0
    handle: float = 8.0
    verified_or_featured: float = 2.0


@dataclass(frozen=True)
class EngagementScales:
    """Per-metric (scale, cap): bonus = min(count / scale, cap)."""

    likes: tuple[float, float] = (10.0, 5.0)
    views: tuple[float, float] = (100.0, 3.0)
    comments: tuple[float, float] = (5.0, 3.0)


@dataclass(frozen=True)
class RecencyPolicy:
    """
    Step-wise recency bonus.

    ``steps`` holds (max_age_hours, bonus) pairs in ascending age order; the
    first step whose age limit is not exceeded wins, older items get nothing.
    """

    steps: tuple[tuple[float, float], ...] = ((24.0, 3.0), (72.0, 2.0), (168.0, 1.0))

    def bonus(self, age_hours: float) -> float:
        age_hours = max(age_hours, 0.0)
        for max_age, bonus in self.steps:
            if age_hours < max_age:
                return bonus
        return 0.0


# Internal entities: small bonuses so they don't drown the textual match signals
INTERNAL_RECENCY = RecencyPolicy()
# News: <24h, <72h, <1 week
NEWS_RECENCY = RecencyPolicy(((24.0, 20.0), (72.0, 15.0), (168.0, 10.0)))
# Video: <7 days, <30 days, <90 days
VIDEO_RECENCY = RecencyPolicy(((168.0, 15.0), (720.0, 10.0), (2160.0, 5.0)))


@dataclass(frozen=True)
class ScoringContext:
    """Per-provider, per-query scoring parameters."""

    now: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    base_score: float = 0.0
    recency: RecencyPolicy = INTERNAL_RECENCY
    extra_bonus: float = 0.0
    weights: MatchWeights = field(default_factory=MatchWeights)
    engagement: EngagementScales = field(default_factory=EngagementScales)


# =============================================================================
# Helpers
# =============================================================================


def clamp_score(value: float) -> float:
    """Clamp a score into [0, 100]; NaN becomes 0."""
    if value is None or math.isnan(value):
        return MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, float(value)))


def _capped(count: int | float | None, scale: float, cap: float) -> float:
    # Missing, negative and NaN counters contribute nothing
    if not count or not count > 0:
        return 0.0
    return min(float(count) / scale, cap)


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.casefold()


def affinity_bonus(matches: int, per_match: float) -> float:
    """Regional-affinity bonus for ``matches`` local indicators."""
    return max(matches, 0) * per_match


def ranking_key(item: ContentItem) -> tuple[float, float, str]:
    """
    Sort key: score descending, then most recent first, then id.

    Using the id as last resort keeps ordering fully deterministic for
    identical requests.
    """
    return (-item.relevance_score, -item.timestamp.timestamp(), item.id)


def sort_by_relevance(items: Iterable[ContentItem]) -> list[ContentItem]:
    return sorted(items, key=ranking_key)


def sort_items(items: Iterable[ContentItem], order: SortOrder = SortOrder.RELEVANCE) -> list[ContentItem]:
    """
    Order ``items`` by the requested SortOrder.

    ``date``: newest first. ``category``: alphabetical by category. Ties fall
    back to ``ranking_key`` so every order stays deterministic.
    """
    if order is SortOrder.DATE:
        return sorted(items, key=lambda item: (-item.timestamp.timestamp(), ranking_key(item)))
    if order is SortOrder.CATEGORY:
        return sorted(items, key=lambda item: (category_key(item.category), ranking_key(item)))
    return sort_by_relevance(items)


# =============================================================================
# RelevanceScorer
# =============================================================================


class RelevanceScorer:
    """
    Deterministic additive relevance model.

    Usage:
        scorer = RelevanceScorer()
        ctx = ScoringContext(base_score=65, recency=NEWS_RECENCY)
        score = scorer.score(item, "reforma", ctx)
    """

    def score(self, item: ContentItem, query: str, context: ScoringContext | None = None) -> float:
        """Return the clamped relevance score of ``item`` for ``query``."""
        return clamp_score(sum(self.breakdown(item, query, context).values()))

    def breakdown(
        self,
        item: ContentItem,
        query: str,
        context: ScoringContext | None = None,
    ) -> dict[str, float]:
        """Unclamped contribution of every signal, keyed by signal name."""
        ctx = context or ScoringContext()
        weights = ctx.weights
        needle = (query or "").strip().casefold()

        parts: dict[str, float] = {"base": ctx.base_score}

        if needle:
            parts["title"] = weights.title if _contains(item.title, needle) else 0.0
            parts["summary"] = weights.summary if _contains(item.summary, needle) else 0.0
            parts["body"] = weights.body if _contains(item.body, needle) else 0.0
            parts["handle"] = weights.handle if _contains(item.handle, needle) else 0.0

        parts["flags"] = weights.verified_or_featured if (item.verified or item.featured) else 0.0

        counters = item.engagement
        scales = ctx.engagement
        parts["engagement"] = (
            _capped(counters.likes, *scales.likes)
            + _capped(counters.views, *scales.views)
            + _capped(counters.comments, *scales.comments)
        )

        age_hours = (ctx.now - item.timestamp).total_seconds() / 3600
        parts["recency"] = ctx.recency.bonus(age_hours)
        parts["provider"] = ctx.extra_bonus

        return parts
