"""
Record Normalizer - provider records to canonical ContentItem.

Upstream sources disagree on field names (``name`` vs ``title``,
``datePublished`` vs ``publishedAt`` vs ``createdAt``, ``viewCount`` vs
``viewsCount``...). The normalizer resolves those aliases, cleans and
truncates text, parses timestamps, and prefixes ids with the provider id so
ids never collide across providers within one response.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from civic_search.application.search.relevance import clamp_score
from civic_search.domain.entities.content import (
    ContentItem,
    ContentKind,
    EngagementCounters,
    Region,
)

logger = logging.getLogger(__name__)

SUMMARY_MAX_LENGTH = 200
TITLE_MAX_LENGTH = 100

# Canonical field -> accepted upstream aliases, in preference order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "videoId", "uuid"),
    "title": ("title", "name", "displayName", "display_name", "headline"),
    "summary": ("summary", "description", "snippet", "bio"),
    "body": ("body", "content", "text"),
    "url": ("url", "link", "webUrl"),
    "timestamp": ("timestamp", "datePublished", "publishedAt", "createdAt", "created_at", "date"),
    "source_name": ("source_name", "sourceName", "source", "publisher"),
    "author": ("author", "channelTitle", "byline"),
    "handle": ("handle", "username", "screen_name"),
    "image_url": ("image_url", "imageUrl", "thumbnailUrl", "thumbnail", "avatar"),
    "views": ("views", "viewCount", "viewsCount", "view_count"),
    "likes": ("likes", "likeCount", "likesCount", "like_count"),
    "comments": ("comments", "commentCount", "commentsCount", "comment_count"),
    "category": ("category", "categoryName"),
    "verified": ("verified", "isVerified"),
    "featured": ("featured", "isFeatured"),
}

_URL_RE = re.compile(r"https?://\S+")
_HASHTAG_RE = re.compile(r"#\w+")
_WS_RE = re.compile(r"\s+")


# =============================================================================
# Field helpers
# =============================================================================


def pick(record: Mapping[str, Any], canonical: str, default: Any = None) -> Any:
    """Return the first non-empty value among the aliases of ``canonical``."""
    for alias in FIELD_ALIASES.get(canonical, (canonical,)):
        value = record.get(alias)
        if value not in (None, ""):
            return value
    return default


def safe_int(value: Any) -> int | None:
    """Parse counters that may arrive as strings ("1234"); invalid -> None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None


def parse_timestamp(value: Any, default: datetime | None = None) -> datetime:
    """
    Parse ISO-8601 strings, epoch seconds or datetimes into aware UTC datetimes.

    Unparseable values fall back to ``default`` (or now).
    """
    fallback = default or datetime.now(tz=UTC)
    if value is None or value == "":
        return fallback
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return fallback
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}")
            return fallback
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return fallback


def truncate(text: str | None, limit: int = SUMMARY_MAX_LENGTH) -> str:
    """Truncate to ``limit`` characters, appending an ellipsis when cut."""
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def clean_text(text: str | None, limit: int = SUMMARY_MAX_LENGTH) -> str:
    """Strip URLs, hashtags and line breaks, then truncate."""
    if not text:
        return ""
    cleaned = _URL_RE.sub("", text)
    cleaned = _HASHTAG_RE.sub("", cleaned)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    return truncate(cleaned, limit)


def prefixed_id(provider_id: str, raw_id: Any) -> str:
    """Make ``raw_id`` unique across providers."""
    raw = str(raw_id)
    prefix = f"{provider_id}:"
    return raw if raw.startswith(prefix) else f"{prefix}{raw}"


# =============================================================================
# RecordNormalizer
# =============================================================================


class RecordNormalizer:
    """
    Converts provider-specific records into ContentItem.

    Usage:
        normalizer = RecordNormalizer()
        item = normalizer.normalize(
            {"name": "Reforma", "description": "...", "datePublished": "2024-05-01T10:00:00Z"},
            provider_id="news_api",
            kind=ContentKind.NEWS,
            region=Region.LOCAL,
        )
    """

    def __init__(self, summary_max_length: int = SUMMARY_MAX_LENGTH):
        self._summary_max_length = summary_max_length

    def normalize(
        self,
        record: Mapping[str, Any],
        *,
        provider_id: str,
        kind: ContentKind,
        region: Region | str | None = None,
        tags: frozenset[str] | set[str] | tuple[str, ...] = (),
        default_source: str = "",
        category: str | None = None,
        language: str = "es",
        priority_source: bool = False,
        synthetic: bool = False,
        extra: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> ContentItem:
        """Build a ContentItem from ``record``; unset fields take safe defaults."""
        raw_id = pick(record, "id")
        body = pick(record, "body", "") or ""
        summary_source = pick(record, "summary") or body
        title = pick(record, "title") or truncate(body, TITLE_MAX_LENGTH) or "(untitled)"

        return ContentItem(
            id=prefixed_id(provider_id, raw_id if raw_id is not None else title),
            kind=kind,
            title=str(title),
            summary=clean_text(str(summary_source), self._summary_max_length),
            body=str(body),
            source_name=str(pick(record, "source_name", default_source) or default_source),
            source_provider_id=provider_id,
            timestamp=parse_timestamp(pick(record, "timestamp"), now),
            region=Region.coerce(region),
            engagement=EngagementCounters(
                views=safe_int(pick(record, "views")),
                likes=safe_int(pick(record, "likes")),
                comments=safe_int(pick(record, "comments")),
            ),
            url=str(pick(record, "url", "") or ""),
            tags=frozenset(tags),
            category=category or str(pick(record, "category", "general") or "general"),
            author=pick(record, "author"),
            handle=pick(record, "handle"),
            image_url=pick(record, "image_url"),
            language=language,
            verified=bool(pick(record, "verified", False)),
            featured=bool(pick(record, "featured", False)),
            priority_source=priority_source,
            synthetic=synthetic,
            extra=extra or {},
        )

    def finalize(self, item: ContentItem) -> ContentItem:
        """
        Make a provider-produced item canonical before merging.

        Clamps the score into [0, 100]; region coercion already happened in
        ContentItem itself.
        """
        score = clamp_score(item.relevance_score)
        if score != item.relevance_score:
            return item.with_score(score)
        return item
