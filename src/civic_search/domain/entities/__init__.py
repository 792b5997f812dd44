"""Domain entities."""

from .content import ContentItem, ContentKind, EngagementCounters, Region, SearchRequest, SortOrder, TypeFilter

__all__ = [
    "ContentItem",
    "ContentKind",
    "EngagementCounters",
    "Region",
    "SearchRequest",
    "SortOrder",
    "TypeFilter",
]
