"""
Video Provider - external video search API.

Two calls per search against a YouTube-Data-style API:
1. ``/search``  -> video ids and snippets
2. ``/videos``  -> statistics (views, likes, comments) and duration

A failing details call degrades to items without statistics; a failing
search call sends the whole provider to its synthetic fallback.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from civic_search.application.search.relevance import VIDEO_RECENCY, ScoringContext
from civic_search.application.search.synthetic import SyntheticTemplate
from civic_search.core.exceptions import APIError, DataError, ParseError
from civic_search.domain.entities.content import ContentKind, Region
from civic_search.infrastructure.http.base_client import BaseAPIClient
from civic_search.infrastructure.providers.base import ContentProvider
from civic_search.infrastructure.providers.enhancement import (
    VIDEO_CATEGORY_EXPANSIONS,
    enhance_query,
    generate_tags,
    infer_category,
)

if TYPE_CHECKING:
    from datetime import datetime

    import httpx

    from civic_search.application.search.normalizer import RecordNormalizer
    from civic_search.application.search.regional import RegionClassifier
    from civic_search.application.search.relevance import RelevanceScorer
    from civic_search.application.search.synthetic import SyntheticContentGenerator
    from civic_search.domain.entities.content import ContentItem
    from civic_search.shared.settings import VideoProviderSettings

logger = logging.getLogger(__name__)

VIDEO_BASE_SCORE = 60.0
PRIORITY_CHANNEL_BONUS = 25.0
LOCAL_AFFINITY_PER_MATCH = 8.0
MAX_RESULTS = 50
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")

VIDEO_FALLBACK_CHANNELS = (
    "Noticias Caracol",
    "RCN Noticias",
    "Semana",
    "El Tiempo",
    "W Radio Colombia",
    "CM& Noticias",
)


def parse_duration(value: str | None) -> str:
    """
    Render an ISO-8601 duration as a clock string.

    >>> parse_duration("PT4M13S")
    '4:13'
    >>> parse_duration("PT1H2M3S")
    '1:02:03'
    """
    if not value:
        return "N/A"
    match = _DURATION_RE.match(value)
    if not match or not any(match.groups()):
        return "N/A"
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class VideoAPIClient(BaseAPIClient):
    """HTTP client for the video search and details endpoints."""

    _service_name = "VideoAPI"

    def __init__(
        self,
        settings: VideoProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=settings.base_url,
            timeout=settings.timeout,
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            transport=transport,
        )
        self._api_key = settings.api_key or ""

    async def search(
        self,
        query: str,
        *,
        max_results: int,
        region_code: str,
        language: str,
        published_after: datetime,
    ) -> list[dict[str, Any]]:
        payload = await self._get_json(
            "/search",
            params={
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": min(max_results, MAX_RESULTS),
                "order": "relevance",
                "publishedAfter": published_after.isoformat().replace("+00:00", "Z"),
                "regionCode": region_code,
                "relevanceLanguage": language,
                "safeSearch": "moderate",
                "videoEmbeddable": "true",
                "key": self._api_key,
            },
        )
        items = payload.get("items", [])
        if not isinstance(items, list):
            raise ParseError("'items' is not a list", source=self._service_name)
        return [i for i in items if isinstance(i, dict)]

    async def details(self, video_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Statistics and content details keyed by video id."""
        if not video_ids:
            return {}
        payload = await self._get_json(
            "/videos",
            params={"part": "statistics,contentDetails", "id": ",".join(video_ids), "key": self._api_key},
        )
        return {str(d["id"]): d for d in payload.get("items", []) if isinstance(d, dict) and d.get("id")}


class VideoProvider(ContentProvider):
    """
    External video provider with priority-channel boosting.

    Usage:
        provider = VideoProvider(settings.video, generator)
        items = await provider.search("reforma", max_results=3)
    """

    provider_id = "video_api"
    kinds = frozenset({ContentKind.VIDEO})
    affinity_per_match = LOCAL_AFFINITY_PER_MATCH

    def __init__(
        self,
        settings: VideoProviderSettings,
        generator: SyntheticContentGenerator,
        *,
        client: VideoAPIClient | None = None,
        scorer: RelevanceScorer | None = None,
        classifier: RegionClassifier | None = None,
        normalizer: RecordNormalizer | None = None,
        fallback_on_empty: bool = True,
    ) -> None:
        super().__init__(
            generator,
            scorer=scorer,
            classifier=classifier,
            normalizer=normalizer,
            enabled=settings.is_configured,
            timeout=settings.timeout,
            fallback_on_empty=fallback_on_empty,
        )
        self._settings = settings
        self._client = client if client is not None else (VideoAPIClient(settings) if settings.is_configured else None)

    def enhance_query(self, query: str, region: str | None, category: str | None) -> str:
        return enhance_query(
            query,
            region,
            category,
            profile=self._classifier.profile,
            expansions=VIDEO_CATEGORY_EXPANSIONS,
        )

    async def suggestions(self, query: str) -> list[str]:
        query = query.strip()
        if not query:
            return []
        return [
            f"{query} {self._classifier.profile.local_qualifier} video",
            f"{query} noticias video",
            f"{query} entrevista",
            f"{query} documental",
        ]

    def scoring_context(self, now: datetime, item: ContentItem | None = None) -> ScoringContext:
        # priority_source marks priority channels; fallback items never carry it
        bonus = PRIORITY_CHANNEL_BONUS if item is not None and item.priority_source else 0.0
        return ScoringContext(now=now, base_score=VIDEO_BASE_SCORE, recency=VIDEO_RECENCY, extra_bonus=bonus)

    async def _fetch(
        self,
        query: str,
        *,
        category: str | None,
        max_results: int,
        language: str,
        region: str,
    ) -> list[ContentItem]:
        if self._client is None:
            return []
        now = self.now()
        snippets = await self._client.search(
            self.enhance_query(query, region, category),
            max_results=max_results,
            region_code=self._classifier.profile.country_code(region),
            language=language,
            published_after=now - timedelta(days=self._settings.published_within_days),
        )
        video_ids = [vid for vid in (_video_id(s) for s in snippets) if vid]
        try:
            details = await self._client.details(video_ids)
        except (APIError, DataError) as e:
            logger.warning(f"{self.provider_id}: details call failed ({e}), continuing without statistics")
            details = {}

        items = []
        for record in snippets:
            video_id = _video_id(record)
            if not video_id:
                continue
            items.append(self._to_item(record, video_id, details.get(video_id, {}), query, category, language, region, now))
        return items[:max_results]

    def _to_item(
        self,
        record: dict[str, Any],
        video_id: str,
        details: dict[str, Any],
        query: str,
        category: str | None,
        language: str,
        region: str,
        now: datetime,
    ) -> ContentItem:
        snippet = record.get("snippet") or {}
        statistics = details.get("statistics") or {}
        content_details = details.get("contentDetails") or {}
        title = str(snippet.get("title") or "")
        description = str(snippet.get("description") or "")
        channel = str(snippet.get("channelTitle") or "")
        channel_id = snippet.get("channelId")
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("medium") or thumbnails.get("default") or {}).get("url")
        priority = self._classifier.is_priority_channel(channel_id)
        upstream_tags = [t for t in snippet.get("tags") or () if isinstance(t, str)][:2]

        item = self._normalizer.normalize(
            {
                "id": video_id,
                "title": title,
                "summary": description,
                "url": WATCH_URL.format(video_id=video_id),
                "timestamp": snippet.get("publishedAt"),
                "source_name": channel,
                "author": channel,
                "image_url": thumbnail,
                **statistics,
            },
            provider_id=self.provider_id,
            kind=ContentKind.VIDEO,
            region=Region.LOCAL if priority else self._classifier.classify(channel, title),
            tags=generate_tags(query, title, upstream_tags),
            category=infer_category(title, description, requested=category),
            language=language,
            priority_source=priority,
            extra={
                "videoId": video_id,
                "channelId": channel_id,
                "duration": parse_duration(content_details.get("duration")),
            },
            now=now,
        )
        return item.with_score(self.score_item(item, query, self.scoring_context(now, item), region))

    def synthetic_template(self) -> SyntheticTemplate:
        return SyntheticTemplate(
            provider_id=self.provider_id,
            kind=ContentKind.VIDEO,
            source_names=VIDEO_FALLBACK_CHANNELS,
            local_sources=frozenset(VIDEO_FALLBACK_CHANNELS),
            title_format="{query} - {source}",
            summary_format="Video informativo sobre {query} presentado por {source}. Contenido de referencia mientras la fuente de video no está disponible.",
            url_format="https://video.example.com/watch/{index}",
            tags=("video", "noticias"),
            max_items=6,
            spacing=timedelta(days=1),
            views_range=(0, 100_000),
            extra={"duration": "5:30"},
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


def _video_id(record: dict[str, Any]) -> str | None:
    raw = record.get("id")
    if isinstance(raw, dict):
        raw = raw.get("videoId")
    return str(raw) if raw else None
