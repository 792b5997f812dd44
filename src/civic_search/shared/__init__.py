"""Explicit settings loaded once from the environment."""

from .settings import AggregatorSettings, NewsProviderSettings, SearchSettings, VideoProviderSettings

__all__ = [
    "SearchSettings",
    "NewsProviderSettings",
    "VideoProviderSettings",
    "AggregatorSettings",
]
