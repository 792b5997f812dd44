"""
Regional classification and prioritization.

RegionClassifier assigns each raw result one of three tiers (local,
regional, international) by scanning text and source identifiers against a
curated RegionProfile. RegionalPrioritizer reorders a scored list with a
stable group-then-sort: bucket by region affinity, sort every bucket by
relevance, concatenate buckets in priority order. Within a bucket real
results come before synthetic fallback items.

Bucket order:
    PRIORITY       real local content from a trusted source/priority channel,
                   or real local content scoring at/above the priority threshold
    LOCAL          remaining local content
    REGIONAL       near-region content
    INTERNATIONAL  everything else
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from dataclasses import dataclass
from enum import IntEnum
from functools import cached_property
from typing import TYPE_CHECKING

from civic_search.application.search.relevance import ranking_key, sort_by_relevance
from civic_search.domain.entities.content import Region

if TYPE_CHECKING:
    from collections.abc import Iterable

    from civic_search.domain.entities.content import ContentItem

logger = logging.getLogger(__name__)


# =============================================================================
# Region profile
# =============================================================================


@dataclass(frozen=True)
class RegionProfile:
    """
    Keyword/domain lists describing the platform's home market.

    The defaults describe Colombia as the local market and Latin America as
    the near region.
    """

    name: str = "colombia"
    local_indicators: tuple[str, ...] = (
        "colombia",
        "colombiano",
        "colombiana",
        "bogotá",
        "bogota",
        "medellín",
        "medellin",
        "cali",
        "barranquilla",
        "cartagena",
        "bucaramanga",
        "petro",
        "duque",
        "uribe",
        "caracol",
        "rcn",
        "el tiempo",
        "el espectador",
        "semana",
    )
    regional_indicators: tuple[str, ...] = (
        "méxico",
        "mexico",
        "argentina",
        "brasil",
        "chile",
        "perú",
        "peru",
        "venezuela",
        "ecuador",
        "américa latina",
        "latinoamérica",
        "latam",
    )
    local_domains: tuple[str, ...] = (".co",)
    regional_domains: tuple[str, ...] = (".mx", ".ar", ".br", ".pe", ".cl", ".ve", ".ec")
    trusted_sources: tuple[str, ...] = (
        "el tiempo",
        "el espectador",
        "semana",
        "caracol",
        "rcn",
        "la república",
        "portafolio",
        "el colombiano",
        "blu radio",
    )
    priority_channels: tuple[str, ...] = (
        "UC8XYg7bgJd9vhcABSYnIAOg",  # Noticias Caracol
        "UCj8yBfGff3xd0On3CPm04vA",  # RCN Noticias
        "UCvKGbj86jPK0jBTrHEo-C2w",  # Semana
        "UCQdqz_uLRCn2LnbfV0O_jxw",  # El Tiempo
        "UC_8DjJpBF9O8SfLH_8eUJeQ",  # W Radio Colombia
        "UCq8aK9NfSxO2GbmWiVl_lrA",  # City TV
        "UC_O76pT6j8lUWNfnD6tUNaw",  # CM& Noticias
        "UCF2-OFYp6FiX6LiJTDsxbLQ",  # Canal TRO
    )
    local_qualifier: str = "Colombia"
    regional_qualifier: str = '("América Latina" OR Colombia OR México OR Argentina)'
    local_country_code: str = "CO"
    regional_country_code: str = "MX"
    default_country_code: str = "US"

    def country_code(self, region: str) -> str:
        if region == Region.LOCAL.value:
            return self.local_country_code
        if region == Region.REGIONAL.value:
            return self.regional_country_code
        return self.default_country_code


DEFAULT_REGION_PROFILE = RegionProfile()


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern[str] | None:
    words = [re.escape(k.casefold()) for k in keywords if k]
    if not words:
        return None
    # Whole-word matches only: "cali" must not match "calidad"
    return re.compile(r"(?<!\w)(?:" + "|".join(words) + r")(?!\w)")


# =============================================================================
# RegionClassifier
# =============================================================================


class RegionClassifier:
    """
    Three-tier region inference from text and source identifiers.

    Usage:
        classifier = RegionClassifier()
        classifier.classify("Reforma pensional en Bogotá")   # Region.LOCAL
        classifier.classify("Elecciones en México")          # Region.REGIONAL
        classifier.classify("EU summit", url="https://bbc.co.uk/x")  # Region.INTERNATIONAL
    """

    def __init__(self, profile: RegionProfile | None = None):
        self._profile = profile or DEFAULT_REGION_PROFILE

    @property
    def profile(self) -> RegionProfile:
        return self._profile

    @cached_property
    def _local_re(self) -> re.Pattern[str] | None:
        return _keyword_pattern(self._profile.local_indicators)

    @cached_property
    def _regional_re(self) -> re.Pattern[str] | None:
        return _keyword_pattern(self._profile.regional_indicators)

    @cached_property
    def _trusted_re(self) -> re.Pattern[str] | None:
        return _keyword_pattern(self._profile.trusted_sources)

    @staticmethod
    def _hostname(url: str | None) -> str:
        if not url:
            return ""
        try:
            return (urllib.parse.urlparse(url).hostname or "").casefold()
        except ValueError:
            return ""

    @staticmethod
    def _host_matches(host: str, suffixes: tuple[str, ...]) -> bool:
        # ".co" matches "eltiempo.co" and "x.com.co", never "bbc.com" or "bbc.co.uk"
        return bool(host) and any(host.endswith(suffix) for suffix in suffixes)

    def local_matches(self, *texts: str | None) -> int:
        """Number of distinct local indicators present in ``texts``."""
        if self._local_re is None:
            return 0
        blob = " ".join(t for t in texts if t).casefold()
        return len(set(self._local_re.findall(blob)))

    def is_trusted_source(self, source: str | None) -> bool:
        if not source or self._trusted_re is None:
            return False
        return bool(self._trusted_re.search(source.casefold()))

    def is_priority_channel(self, channel_id: str | None) -> bool:
        return bool(channel_id) and channel_id in self._profile.priority_channels

    def classify(self, *texts: str | None, url: str | None = None) -> Region:
        """Classify content; anything that cannot be placed is INTERNATIONAL."""
        blob = " ".join(t for t in texts if t).casefold()
        host = self._hostname(url)

        if self._host_matches(host, self._profile.local_domains) or (
            self._local_re is not None and self._local_re.search(blob)
        ):
            return Region.LOCAL

        if self._host_matches(host, self._profile.regional_domains) or (
            self._regional_re is not None and self._regional_re.search(blob)
        ):
            return Region.REGIONAL

        return Region.INTERNATIONAL


# =============================================================================
# RegionalPrioritizer
# =============================================================================


class Bucket(IntEnum):
    """Priority buckets, in output order."""

    PRIORITY = 0
    LOCAL = 1
    REGIONAL = 2
    INTERNATIONAL = 3


class RegionalPrioritizer:
    """
    Stable group-then-sort reordering by regional affinity.

    When the requested region is not the local default (e.g. "world"), or
    prioritization is disabled, the list is sorted purely by relevance.
    """

    def __init__(
        self,
        local_region: str = Region.LOCAL.value,
        priority_threshold: float = 85.0,
        enabled: bool = True,
    ):
        self._local_region = local_region
        self._priority_threshold = priority_threshold
        self._enabled = enabled

    def should_prioritize(self, region: str | None) -> bool:
        return self._enabled and (region or self._local_region) == self._local_region

    def bucket_of(self, item: ContentItem) -> Bucket:
        if item.region is Region.LOCAL:
            if item.synthetic:
                return Bucket.LOCAL
            if item.priority_source or item.relevance_score >= self._priority_threshold:
                return Bucket.PRIORITY
            return Bucket.LOCAL
        if item.region is Region.REGIONAL:
            return Bucket.REGIONAL
        return Bucket.INTERNATIONAL

    def prioritize(self, items: Iterable[ContentItem], region: str | None = None) -> list[ContentItem]:
        """Return items grouped by bucket, each bucket sorted by relevance."""
        if not self.should_prioritize(region):
            return sort_by_relevance(items)

        buckets: dict[Bucket, list[ContentItem]] = {bucket: [] for bucket in Bucket}
        for item in items:
            buckets[self.bucket_of(item)].append(item)

        ordered: list[ContentItem] = []
        for bucket in Bucket:
            ordered.extend(sorted(buckets[bucket], key=lambda item: (item.synthetic, ranking_key(item))))

        logger.debug(
            "Regional buckets: " + ", ".join(f"{b.name.lower()}={len(buckets[b])}" for b in Bucket)
        )
        return ordered
