"""
Content Store access for widget rendering.

Widgets read published content through a ContentStore, which returns
immutable snapshots so filtering and rendering never touch the session.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from ..extensions import db
from ..models.content import Category, ContentItem, Tag


WORDS_PER_MINUTE = 200


def estimate_read_time(body: Optional[str]) -> Optional[int]:
    """Minutes to read body, at least 1; None without a body."""
    if not body:
        return None
    return max(1, round(len(body.split()) / WORDS_PER_MINUTE))


@dataclass(frozen=True)
class TermRef:
    """A category or tag attached to a content item."""
    id: str
    name: str
    slug: str

    def matches(self, value: str) -> bool:
        return value in (self.id, self.slug)


@dataclass(frozen=True)
class ContentSnapshot:
    id: str
    title: str
    status: str
    excerpt: str = ''
    is_featured: bool = False
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    published_at: Optional[datetime] = None
    canonical_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    view_count: int = 0
    sort_position: int = 0
    read_time: Optional[int] = None
    categories: Tuple[TermRef, ...] = field(default_factory=tuple)
    tags: Tuple[TermRef, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, item: ContentItem) -> 'ContentSnapshot':
        return cls(
            id=item.id,
            title=item.title,
            status=item.status,
            excerpt=item.excerpt or '',
            is_featured=bool(item.is_featured),
            author_id=item.author_id,
            author_name=item.author_name,
            published_at=item.published_at,
            canonical_url=item.canonical_url,
            featured_image_url=item.featured_image_url,
            view_count=item.view_count or 0,
            sort_position=item.sort_position or 0,
            read_time=estimate_read_time(item.body),
            categories=tuple(
                TermRef(c.id, c.name, c.slug) for c in sorted(item.categories, key=lambda c: c.name)
            ),
            tags=tuple(
                TermRef(t.id, t.name, t.slug) for t in sorted(item.tags, key=lambda t: t.name)
            ),
        )


class ContentStore:
    """Reads content items for a website from the database."""

    def list_for_website(self, website_id: str) -> List[ContentSnapshot]:
        items = ContentItem.query.filter_by(website_id=website_id).all()
        return [ContentSnapshot.from_model(item) for item in items]

    def content_version(self, website_id: str) -> str:
        """
        Cheap fingerprint of a website's content, changes on any write.

        Covers items and the categories and tags they are filtered and
        navigated by. Used to key server-side render caches and ETags.
        """
        parts = []
        for model in (ContentItem, Category, Tag):
            count, last_updated = db.session.query(
                db.func.count(model.id),
                db.func.max(model.updated_at),
            ).filter(model.website_id == website_id).one()
            stamp = last_updated.isoformat() if isinstance(last_updated, datetime) else str(last_updated)
            parts.append(f'{count}:{stamp}')
        return '|'.join(parts)

    def list_published(self, website_id: str, limit: int) -> List[ContentItem]:
        """Newest published items, for the legacy content endpoint."""
        return (
            ContentItem.query
            .filter_by(website_id=website_id, status='published')
            .order_by(ContentItem.published_at.desc(), ContentItem.id.asc())
            .limit(limit)
            .all()
        )
