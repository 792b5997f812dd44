"""
ContentItem - Canonical search result model.

Every content provider (internal entity store, external news API, external
video API) normalizes its records into a ContentItem so the aggregator can
score, order and paginate one homogeneous list.

Architecture Decision:
    ContentItem is a frozen dataclass. It is a request-scoped view, created
    during one aggregation call and discarded after the response is sent, so
    it is never mutated: re-scoring produces a copy via ``with_score``.

Example:
    >>> item = ContentItem(
    ...     id="news_api:abc",
    ...     kind=ContentKind.NEWS,
    ...     title="Reforma pensional avanza en el Senado",
    ...     source_provider_id="news_api",
    ... )
    >>> item.region
    <Region.INTERNATIONAL: 'international'>
"""

from __future__ import annotations

import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any


class ContentKind(str, Enum):
    """Kinds of content the platform can return."""

    POST = "post"
    NEWS = "news"
    VIDEO = "video"
    USER = "user"


class Region(str, Enum):
    """Coarse geographic/editorial affinity of a content item."""

    LOCAL = "local"
    REGIONAL = "regional"
    INTERNATIONAL = "international"

    @classmethod
    def coerce(cls, value: Region | str | None) -> Region:
        """Map any value to a Region; unknown values become INTERNATIONAL."""
        if isinstance(value, Region):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.INTERNATIONAL


class TypeFilter(str, Enum):
    """Type filter accepted by the search endpoint."""

    ALL = "all"
    POSTS = "posts"
    NEWS = "news"
    REELS = "reels"
    VIDEOS = "videos"
    USERS = "users"

    @property
    def kinds(self) -> frozenset[ContentKind]:
        """Content kinds selected by this filter."""
        return _FILTER_KINDS[self]


class SortOrder(str, Enum):
    """Result ordering accepted by the search endpoint."""

    RELEVANCE = "relevance"
    DATE = "date"
    CATEGORY = "category"

    @classmethod
    def coerce(cls, value: SortOrder | str | None) -> SortOrder:
        """Map any value to a SortOrder; unknown values become RELEVANCE."""
        if isinstance(value, SortOrder):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.RELEVANCE


_FILTER_KINDS: dict[TypeFilter, frozenset[ContentKind]] = {
    TypeFilter.ALL: frozenset(ContentKind),
    TypeFilter.POSTS: frozenset({ContentKind.POST}),
    TypeFilter.NEWS: frozenset({ContentKind.NEWS}),
    TypeFilter.REELS: frozenset({ContentKind.VIDEO}),
    TypeFilter.VIDEOS: frozenset({ContentKind.VIDEO}),
    TypeFilter.USERS: frozenset({ContentKind.USER}),
}


def category_key(category: str | None) -> str:
    """Case- and accent-insensitive comparison key ('Política' == 'politica')."""
    decomposed = unicodedata.normalize("NFKD", (category or "").strip().casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


@dataclass(frozen=True)
class EngagementCounters:
    """Optional engagement signals; availability depends on the provider."""

    views: int | None = None
    likes: int | None = None
    comments: int | None = None

    def to_dict(self) -> dict[str, int]:
        return {
            name: value
            for name, value in (("views", self.views), ("likes", self.likes), ("comments", self.comments))
            if value is not None
        }


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class ContentItem:
    """
    Canonical, immutable search result.

    ``relevance_score`` is only meaningful for the query that produced it.
    ``synthetic`` marks items produced by a provider's fallback path instead
    of a real upstream record.
    """

    id: str
    kind: ContentKind
    title: str
    source_provider_id: str
    summary: str = ""
    body: str = ""
    source_name: str = ""
    timestamp: datetime = field(default_factory=_utcnow)
    region: Region = Region.INTERNATIONAL
    engagement: EngagementCounters = field(default_factory=EngagementCounters)
    relevance_score: float = 0.0
    url: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)
    category: str = "general"
    author: str | None = None
    handle: str | None = None
    image_url: str | None = None
    language: str = "es"
    verified: bool = False
    featured: bool = False
    priority_source: bool = False
    synthetic: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "region", Region.coerce(self.region))
        object.__setattr__(self, "tags", frozenset(self.tags))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def with_score(self, score: float) -> ContentItem:
        """Return a copy carrying a new relevance score."""
        return replace(self, relevance_score=score)

    @property
    def searchable_text(self) -> str:
        """Title, summary, source and author joined for keyword scans."""
        return " ".join(p for p in (self.title, self.summary, self.source_name, self.author or "", self.url) if p)

    def to_dict(self) -> dict[str, Any]:
        """Outbound JSON shape (camelCase keys, as consumed by the web client)."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "title": self.title,
            "summary": self.summary,
            "sourceName": self.source_name,
            "sourceProviderId": self.source_provider_id,
            "timestamp": self.timestamp.isoformat(),
            "region": self.region.value,
            "engagement": self.engagement.to_dict(),
            "relevanceScore": round(self.relevance_score, 2),
            "url": self.url,
            "tags": sorted(self.tags),
            "category": self.category,
            "language": self.language,
            "verified": self.verified,
            "featured": self.featured,
            "synthetic": self.synthetic,
        }
        if self.author:
            data["author"] = self.author
        if self.handle:
            data["username"] = self.handle
        if self.image_url:
            data["imageUrl"] = self.image_url
        if self.extra:
            data["extra"] = dict(self.extra)
        return data


@dataclass(frozen=True)
class SearchRequest:
    """A validated search request (see SearchFacade for coercion rules)."""

    query: str
    type_filter: TypeFilter = TypeFilter.ALL
    page: int = 1
    page_size: int = 10
    region: str = "local"
    category: str | None = None
    language: str = "es"
    sort_by: SortOrder = SortOrder.RELEVANCE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size
