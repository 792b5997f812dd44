"""
Entity lookup - read access to locally owned records.

The search core only needs "substring search filtered by a visibility flag"
plus three cheap suggestion lookups. ``EntityLookup`` is that capability;
``InMemoryEntityStore`` implements it over plain records and is what the
default container wires (seeded with demo content) and what tests use.
A database-backed store only has to satisfy the same protocol.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """Locally owned record kinds."""

    POST = "post"
    NEWS_TOPIC = "news_topic"
    REEL = "reel"
    USER = "user"


@dataclass(frozen=True)
class EntityRecord:
    """One locally owned record, as returned by an EntityLookup."""

    id: str
    kind: EntityKind
    created_at: datetime
    title: str = ""
    description: str = ""
    content: str = ""
    display_name: str | None = None
    username: str | None = None
    image_url: str | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()
    likes: int | None = None
    views: int | None = None
    comments: int | None = None
    verified: bool = False
    featured: bool = False
    visible: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        if self.kind is EntityKind.USER:
            return f"/users/{self.username or self.id}"
        prefix = {EntityKind.POST: "posts", EntityKind.NEWS_TOPIC: "news", EntityKind.REEL: "reels"}[self.kind]
        return f"/{prefix}/{self.id}"

    def searchable_fields(self) -> tuple[str, ...]:
        """Fields matched by substring search for this kind."""
        if self.kind is EntityKind.POST:
            return (self.content,)
        if self.kind is EntityKind.NEWS_TOPIC:
            return (self.title, self.description, self.content)
        if self.kind is EntityKind.REEL:
            return (self.title, self.description)
        return (self.username or "", self.display_name or "", self.description)

    def to_record(self) -> dict[str, Any]:
        """
        Plain mapping using the field names the record normalizer understands.

        Only user records carry a handle; posts without a title get one from
        their content in the normalizer.
        """
        is_user = self.kind is EntityKind.USER
        return {
            "id": self.id,
            "title": self.title or ((self.display_name or self.username) if is_user else None),
            "summary": self.description,
            "body": self.content,
            "timestamp": self.created_at,
            "author": self.display_name or self.username,
            "username": self.username if is_user else None,
            "image_url": self.image_url,
            "category": self.category,
            "likes": self.likes,
            "views": self.views,
            "comments": self.comments,
            "verified": self.verified,
            "featured": self.featured,
            "url": self.path,
        }


@runtime_checkable
class EntityLookup(Protocol):
    """Read-only lookup capability over locally owned records."""

    async def search(self, kind: EntityKind, query: str, limit: int) -> list[EntityRecord]:
        """Visible records of ``kind`` containing ``query``, newest first."""
        ...

    async def suggest_users(self, query: str, limit: int) -> list[dict[str, Any]]: ...

    async def suggest_tags(self, query: str, limit: int) -> list[str]: ...

    async def suggest_categories(self, query: str, limit: int) -> list[dict[str, Any]]: ...


def _contains(text: str | None, needle: str) -> bool:
    return bool(text) and needle in text.casefold()


class InMemoryEntityStore:
    """
    EntityLookup over an in-memory list of records.

    Usage:
        store = InMemoryEntityStore([record1, record2], categories={"Política": "🏛️"})
        posts = await store.search(EntityKind.POST, "reforma", limit=5)
    """

    def __init__(
        self,
        records: Iterable[EntityRecord] = (),
        categories: Mapping[str, str | None] | None = None,
    ):
        self._records: list[EntityRecord] = list(records)
        self._categories: dict[str, str | None] = dict(categories or {})

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: EntityRecord) -> None:
        self._records.append(record)

    async def search(self, kind: EntityKind, query: str, limit: int) -> list[EntityRecord]:
        needle = query.strip().casefold()
        if not needle or limit <= 0:
            return []
        matches = [
            r
            for r in self._records
            if r.kind is kind and r.visible and any(_contains(f, needle) for f in r.searchable_fields())
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches[:limit]

    async def suggest_users(self, query: str, limit: int) -> list[dict[str, Any]]:
        needle = query.strip().casefold()
        users = [
            r
            for r in self._records
            if r.kind is EntityKind.USER
            and r.visible
            and (_contains(r.username, needle) or _contains(r.display_name, needle))
        ]
        return [
            {
                "value": u.display_name or u.username,
                "username": u.username,
                "avatar": u.image_url,
                "verified": u.verified,
            }
            for u in users[:limit]
        ]

    async def suggest_tags(self, query: str, limit: int) -> list[str]:
        needle = query.strip().casefold()
        seen: dict[str, None] = {}
        for record in self._records:
            if record.kind not in (EntityKind.POST, EntityKind.NEWS_TOPIC) or not record.visible:
                continue
            for tag in record.tags:
                if _contains(tag, needle):
                    seen.setdefault(tag, None)
        return list(seen)[:limit]

    async def suggest_categories(self, query: str, limit: int) -> list[dict[str, Any]]:
        needle = query.strip().casefold()
        return [{"value": name, "icon": icon} for name, icon in self._categories.items() if _contains(name, needle)][
            :limit
        ]

    @classmethod
    def with_demo_content(cls, now: datetime | None = None) -> InMemoryEntityStore:
        """A small store of civic demo content, timestamps relative to ``now``."""
        now = now or datetime.now(tz=UTC)

        def hours(n: int) -> datetime:
            return now - timedelta(hours=n)

        records = [
            EntityRecord(
                id="u-1",
                kind=EntityKind.USER,
                created_at=hours(24 * 200),
                display_name="Veeduría Ciudadana Bogotá",
                username="veeduria_bogota",
                description="Control social y participación ciudadana en Bogotá",
                verified=True,
            ),
            EntityRecord(
                id="u-2",
                kind=EntityKind.USER,
                created_at=hours(24 * 90),
                display_name="Laura Reformista",
                username="laura_reforma",
                description="Analista de políticas públicas, reforma pensional y laboral",
            ),
            EntityRecord(
                id="u-3",
                kind=EntityKind.USER,
                created_at=hours(24 * 30),
                display_name="Cuenta suspendida",
                username="reforma_spam",
                visible=False,
            ),
            EntityRecord(
                id="p-1",
                kind=EntityKind.POST,
                created_at=hours(3),
                content="La reforma pensional llega al Senado: ¿qué cambia para los trabajadores en Colombia?",
                display_name="Laura Reformista",
                username="laura_reforma",
                category="Política",
                tags=("reforma pensional", "senado"),
                likes=120,
                comments=34,
            ),
            EntityRecord(
                id="p-2",
                kind=EntityKind.POST,
                created_at=hours(40),
                content="Cabildo abierto en Medellín sobre presupuesto participativo",
                display_name="Veeduría Ciudadana Bogotá",
                username="veeduria_bogota",
                category="Participación",
                tags=("participación ciudadana", "presupuesto"),
                likes=45,
                comments=8,
            ),
            EntityRecord(
                id="p-3",
                kind=EntityKind.POST,
                created_at=hours(10),
                content="Borrador privado sobre la reforma",
                tags=("reforma",),
                visible=False,
            ),
            EntityRecord(
                id="n-1",
                kind=EntityKind.NEWS_TOPIC,
                created_at=hours(12),
                title="Reforma pensional: claves del debate",
                description="Lo que se discute en el Congreso sobre la reforma pensional",
                content="El proyecto de reforma pensional propone un sistema de pilares...",
                display_name="Redacción",
                category="Política",
                tags=("reforma pensional", "congreso"),
                views=2500,
                featured=True,
            ),
            EntityRecord(
                id="n-2",
                kind=EntityKind.NEWS_TOPIC,
                created_at=hours(80),
                title="Seguridad en las fronteras",
                description="Balance de seguridad en la frontera con Venezuela",
                category="Seguridad",
                tags=("seguridad fronteras",),
                views=900,
            ),
            EntityRecord(
                id="r-1",
                kind=EntityKind.REEL,
                created_at=hours(6),
                title="Reforma pensional en 60 segundos",
                description="Explicación rápida de la reforma",
                display_name="Laura Reformista",
                username="laura_reforma",
                category="Política",
                views=15000,
                likes=800,
                extra={"duration": 60},
            ),
            EntityRecord(
                id="r-2",
                kind=EntityKind.REEL,
                created_at=hours(30),
                title="Así se vota en las elecciones regionales",
                description="Guía para votar en Bogotá",
                category="Elecciones",
                views=4000,
                likes=150,
                extra={"duration": 45},
            ),
        ]
        categories = {
            "Política": "🏛️",
            "Participación": "🗳️",
            "Seguridad": "🛡️",
            "Elecciones": "🗳️",
            "Economía": "📈",
        }
        logger.debug(f"Seeded demo entity store with {len(records)} records")
        return cls(records, categories)
