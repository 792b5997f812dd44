"""
Query enhancement and light content inference for external providers.

Lookup tables only; nothing here performs I/O.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from civic_search.domain.entities.content import Region

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from civic_search.application.search.regional import RegionProfile

# Category -> phrase appended to the upstream query
NEWS_CATEGORY_EXPANSIONS: dict[str, str] = {
    "politica": "política gobierno elecciones",
    "internacional": "internacional relaciones diplomacia",
    "economia": "economía mercados finanzas",
    "social": "sociedad comunidad social",
    "seguridad": "seguridad defensa militar",
}

VIDEO_CATEGORY_EXPANSIONS: dict[str, str] = {
    "politica": "política noticias",
    "internacional": "internacional noticias",
    "economia": "economía análisis",
    "social": "sociedad",
    "seguridad": "seguridad",
}

# Upstream news categories -> platform categories
UPSTREAM_NEWS_CATEGORIES: dict[str, str] = {
    "Politics": "politica",
    "World": "internacional",
    "Business": "economia",
    "ScienceAndTechnology": "tecnologia",
    "Health": "social",
    "Sports": "deportes",
}

# Checked in order; first category with a matching keyword wins
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("politica", ("politic", "polític", "gobierno", "congreso", "elecciones", "presidente")),
    ("economia", ("econom", "mercado", "finanz", "comercio", "bolsa")),
    ("seguridad", ("seguridad", "militar", "defensa", "crimen", "policía", "policia")),
    ("social", ("social", "comunidad", "salud", "educación", "protesta", "manifestación")),
    ("internacional", ("internacional", "mundial", "exterior", "diplomacia", "global")),
)

_STOPWORDS = frozenset({"the", "and", "for", "are", "but", "para", "como", "sobre", "entre", "desde"})
_WORD_RE = re.compile(r"\w+")

MAX_TAGS = 6


def enhance_query(
    query: str,
    region: str | None,
    category: str | None,
    *,
    profile: RegionProfile,
    expansions: Mapping[str, str],
) -> str:
    """
    Append the region qualifier and the category expansion phrase.

    Unmapped categories and non-local/non-regional regions pass through
    unchanged.
    """
    parts = [query.strip()]
    if region == Region.LOCAL.value:
        parts.append(profile.local_qualifier)
    elif region == Region.REGIONAL.value:
        parts.append(profile.regional_qualifier)
    if category and category in expansions:
        parts.append(expansions[category])
    return " ".join(p for p in parts if p)


def infer_category(
    *texts: str | None,
    requested: str | None = None,
    upstream: str | None = None,
) -> str:
    """Requested category wins, then the upstream category, then keywords."""
    if requested:
        return requested
    if upstream and upstream in UPSTREAM_NEWS_CATEGORIES:
        return UPSTREAM_NEWS_CATEGORIES[upstream]
    blob = " ".join(t for t in texts if t).casefold()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in blob for keyword in keywords):
            return category
    return "general"


def generate_tags(query: str, title: str | None, extra: Iterable[str] = ()) -> frozenset[str]:
    """Query terms (>2 chars), up to three title words (>3 chars), then ``extra``."""
    tags: list[str] = [t for t in _WORD_RE.findall(query.casefold()) if len(t) > 2]
    title_terms = [t for t in _WORD_RE.findall((title or "").casefold()) if len(t) > 3 and t not in _STOPWORDS]
    tags.extend(title_terms[:3])
    tags.extend(t.casefold() for t in extra if t)
    unique = list(dict.fromkeys(tags))
    return frozenset(unique[:MAX_TAGS])
