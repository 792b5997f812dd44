"""
Civic Search - federated content search for a civic platform.

Fans one query out to internal entity providers (posts, news topics, reels,
users) and external news/video APIs, scores every result with one additive
relevance model, groups local content first and paginates the merged list.

Usage:
    from civic_search import ApplicationContainer

    facade = ApplicationContainer().facade()
    response = await facade.search("reforma pensional", type_filter="all", page=1, page_size=8)

    for item in response.items:
        print(f"{item.kind.value}: {item.title} ({item.relevance_score:.0f})")

Features:
    - Concurrent provider fan-out with per-provider timeouts
    - Deterministic synthetic fallback for unavailable providers
    - Local > regional > international prioritization
    - Suggestions and popular queries
"""

__version__ = "0.1.0"

from .application.search.facade import SearchFacade, SearchResponse
from .container import ApplicationContainer
from .domain.entities.content import ContentItem, ContentKind, Region, SearchRequest, TypeFilter

__all__ = [
    "__version__",
    # Entry points
    "ApplicationContainer",
    "SearchFacade",
    "SearchResponse",
    # Domain
    "ContentItem",
    "ContentKind",
    "Region",
    "SearchRequest",
    "TypeFilter",
]
