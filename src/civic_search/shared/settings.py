"""
Settings - explicit configuration passed into providers at startup.

The process environment is read exactly once, by ``SearchSettings.from_env``
(called from the DI container or the server entry point). Providers receive
their own settings object in the constructor and never look at ``os.environ``
at call time.

Environment Variables:
    NEWS_API_KEY: Subscription key for the news search API
    ENABLE_NEWS_SEARCH: "true" to call the news API (default: false)
    YOUTUBE_API_KEY: API key for the video search API
    ENABLE_VIDEO_SEARCH: "true" to call the video API (default: false)
    PRIORITIZE_LOCAL_CONTENT: "false" disables regional prioritization
    PROVIDER_TIMEOUT: Per-provider timeout in seconds (default: 5)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_NEWS_API_URL = "https://api.bing.microsoft.com/v7.0/news/search"
DEFAULT_VIDEO_API_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_USER_AGENT = "civic-search/0.1"

DEFAULT_POPULAR_QUERIES: tuple[str, ...] = (
    "Gustavo Petro",
    "Centro Democrático",
    "Reforma pensional",
    "Elecciones regionales",
    "Congreso Colombia",
    "Participación ciudadana",
    "Seguridad fronteras",
    "Reforma tributaria",
)


def _env_flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(value: str | None, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric setting value {value!r}, using {default}")
        return default


@dataclass(frozen=True)
class NewsProviderSettings:
    """Settings for the external news provider."""

    api_key: str | None = None
    enabled: bool = False
    base_url: str = DEFAULT_NEWS_API_URL
    timeout: float = 5.0
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass(frozen=True)
class VideoProviderSettings:
    """Settings for the external video provider."""

    api_key: str | None = None
    enabled: bool = False
    base_url: str = DEFAULT_VIDEO_API_URL
    timeout: float = 5.0
    user_agent: str = DEFAULT_USER_AGENT
    published_within_days: int = 180

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass(frozen=True)
class AggregatorSettings:
    """Settings for fan-out, merging and pagination."""

    provider_timeout: float = 5.0
    max_total_results: int = 2000
    prioritize_local: bool = True
    local_region: str = "local"
    priority_score_threshold: float = 85.0


@dataclass(frozen=True)
class SearchSettings:
    """Top-level settings for the search service."""

    news: NewsProviderSettings = field(default_factory=NewsProviderSettings)
    video: VideoProviderSettings = field(default_factory=VideoProviderSettings)
    aggregator: AggregatorSettings = field(default_factory=AggregatorSettings)
    default_page: int = 1
    default_page_size: int = 10
    max_page_size: int = 50
    suggestion_limit: int = 5
    min_suggestion_length: int = 2
    fallback_on_empty: bool = True
    popular_queries: tuple[str, ...] = DEFAULT_POPULAR_QUERIES

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SearchSettings:
        """Build settings from environment variables (read once, at startup)."""
        env = os.environ if environ is None else environ
        timeout = _env_float(env.get("PROVIDER_TIMEOUT"), 5.0)

        settings = cls(
            news=NewsProviderSettings(
                api_key=env.get("NEWS_API_KEY") or None,
                enabled=_env_flag(env.get("ENABLE_NEWS_SEARCH")),
                base_url=env.get("NEWS_API_URL") or DEFAULT_NEWS_API_URL,
                timeout=timeout,
            ),
            video=VideoProviderSettings(
                api_key=env.get("YOUTUBE_API_KEY") or None,
                enabled=_env_flag(env.get("ENABLE_VIDEO_SEARCH")),
                base_url=env.get("VIDEO_API_URL") or DEFAULT_VIDEO_API_URL,
                timeout=timeout,
            ),
            aggregator=AggregatorSettings(
                provider_timeout=timeout,
                prioritize_local=_env_flag(env.get("PRIORITIZE_LOCAL_CONTENT"), default=True),
            ),
        )
        logger.info(
            f"Search settings loaded: news={'on' if settings.news.is_configured else 'fallback'}, "
            f"video={'on' if settings.video.is_configured else 'fallback'}, timeout={timeout}s"
        )
        return settings
