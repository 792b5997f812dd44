"""Tests for record normalization."""

from __future__ import annotations

from datetime import UTC, datetime

from civic_search.application.search.normalizer import (
    RecordNormalizer,
    clean_text,
    parse_timestamp,
    pick,
    prefixed_id,
    safe_int,
    truncate,
)
from civic_search.domain.entities.content import ContentKind, Region

# ============================================================
# Field helpers
# ============================================================


class TestPick:
    def test_alias(self):
        assert pick({"name": "Reforma"}, "title") == "Reforma"

    def test_preference_order(self):
        assert pick({"name": "B", "title": "A"}, "title") == "A"

    def test_empty_values_skipped(self):
        assert pick({"title": "", "name": "Y"}, "title") == "Y"

    def test_default(self):
        assert pick({}, "url", "") == ""


class TestSafeInt:
    def test_string_counter(self):
        assert safe_int("1234") == 1234

    def test_float_string(self):
        assert safe_int("12.7") == 12

    def test_invalid(self):
        assert safe_int("abc") is None
        assert safe_int(None) is None
        assert safe_int(True) is None


class TestParseTimestamp:
    def test_iso_with_z(self):
        parsed = parse_timestamp("2024-05-01T10:00:00Z")
        assert parsed == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)

    def test_naive_becomes_utc(self):
        assert parse_timestamp("2024-05-01T10:00:00").tzinfo is UTC

    def test_epoch(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)

    def test_garbage_uses_default(self, now):
        assert parse_timestamp("yesterday-ish", now) == now
        assert parse_timestamp(None, now) == now
        assert parse_timestamp(["2024"], now) == now

    def test_datetime_passthrough(self, now):
        assert parse_timestamp(now) is now


class TestTextHelpers:
    def test_truncate(self):
        text = "a" * 250
        result = truncate(text)
        assert len(result) == 203
        assert result.endswith("...")

    def test_truncate_short(self):
        assert truncate("  corto  ") == "corto"
        assert truncate(None) == ""

    def test_clean_text(self):
        assert clean_text("Mira https://x.co/abc #reforma\nhoy") == "Mira hoy"

    def test_prefixed_id(self):
        assert prefixed_id("news_api", "abc") == "news_api:abc"
        assert prefixed_id("news_api", "news_api:abc") == "news_api:abc"
        assert prefixed_id("video_api", 42) == "video_api:42"


# ============================================================
# RecordNormalizer
# ============================================================


class TestRecordNormalizer:
    def test_news_style_record(self, now):
        item = RecordNormalizer().normalize(
            {
                "name": "Reforma",
                "description": "Debate en el Senado #reforma",
                "datePublished": "2024-05-01T10:00:00Z",
                "viewCount": "1500",
                "url": "https://example.com/a",
            },
            provider_id="news_api",
            kind=ContentKind.NEWS,
            region="local",
            now=now,
        )
        assert item.id == "news_api:Reforma"
        assert item.title == "Reforma"
        assert item.summary == "Debate en el Senado"
        assert item.engagement.views == 1500
        assert item.region is Region.LOCAL
        assert item.url == "https://example.com/a"
        assert item.source_provider_id == "news_api"

    def test_title_from_body(self):
        body = "x" * 150
        item = RecordNormalizer().normalize({"id": 1, "content": body}, provider_id="p", kind=ContentKind.POST)
        assert item.title == "x" * 100 + "..."
        assert item.summary.startswith("x")
        assert item.id == "p:1"

    def test_untitled(self):
        item = RecordNormalizer().normalize({}, provider_id="p", kind=ContentKind.POST)
        assert item.title == "(untitled)"
        assert item.id == "p:(untitled)"

    def test_defaults(self, now):
        item = RecordNormalizer().normalize(
            {"title": "T"},
            provider_id="p",
            kind=ContentKind.USER,
            default_source="Comunidad",
            now=now,
        )
        assert item.source_name == "Comunidad"
        assert item.category == "general"
        assert item.timestamp == now
        assert item.region is Region.INTERNATIONAL
        assert item.engagement.to_dict() == {}

    def test_summary_length_configurable(self):
        item = RecordNormalizer(summary_max_length=10).normalize(
            {"title": "T", "summary": "una descripción bastante larga"},
            provider_id="p",
            kind=ContentKind.NEWS,
        )
        assert len(item.summary) <= 13

    def test_finalize_clamps(self, make_item):
        normalizer = RecordNormalizer()
        assert normalizer.finalize(make_item("a", score=130)).relevance_score == 100.0
        assert normalizer.finalize(make_item("b", score=-3)).relevance_score == 0.0

    def test_finalize_keeps_valid_item(self, make_item):
        item = make_item("a", score=40)
        assert RecordNormalizer().finalize(item) is item
