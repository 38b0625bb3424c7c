"""
Content store models.

Widgets only read content; authoring happens elsewhere in the platform.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import event

from ..extensions import db


class ContentStatus(str, Enum):
    DRAFT = 'draft'
    REVIEW = 'review'
    PUBLISHED = 'published'
    ARCHIVED = 'archived'


content_categories = db.Table(
    'content_categories',
    db.Column('content_id', db.String(36), db.ForeignKey('content_items.id'), primary_key=True),
    db.Column('category_id', db.String(36), db.ForeignKey('categories.id'), primary_key=True),
)

content_tags = db.Table(
    'content_tags',
    db.Column('content_id', db.String(36), db.ForeignKey('content_items.id'), primary_key=True),
    db.Column('tag_id', db.String(36), db.ForeignKey('tags.id'), primary_key=True),
)


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    website_id = db.Column(db.String(36), db.ForeignKey('websites.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug}


class Tag(db.Model):
    __tablename__ = 'tags'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    website_id = db.Column(db.String(36), db.ForeignKey('websites.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug}


class ContentItem(db.Model):
    """
    A publishable piece of content (blog post, article).
    """
    __tablename__ = 'content_items'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    website_id = db.Column(db.String(36), db.ForeignKey('websites.id'), nullable=False, index=True)

    title = db.Column(db.String(500), nullable=False)
    slug = db.Column(db.String(500))
    excerpt = db.Column(db.Text)
    body = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default=ContentStatus.DRAFT.value, index=True)
    is_featured = db.Column(db.Boolean, default=False, nullable=False)

    author_id = db.Column(db.String(64))
    author_name = db.Column(db.String(255))

    published_at = db.Column(db.DateTime, index=True)
    canonical_url = db.Column(db.String(1000))
    featured_image_url = db.Column(db.String(1000))

    view_count = db.Column(db.Integer, default=0, nullable=False)
    # Manual ordering for sort_by=custom
    sort_position = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    categories = db.relationship('Category', secondary=content_categories, lazy='selectin')
    tags = db.relationship('Tag', secondary=content_tags, lazy='selectin')

    def __repr__(self):
        return f'<ContentItem {self.title!r} {self.status}>'

    def to_dict(self):
        """Public representation used by the legacy content endpoint."""
        return {
            'id': self.id,
            'title': self.title,
            'excerpt': self.excerpt or '',
            'url': self.canonical_url,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'featured_image_url': self.featured_image_url,
            'author_name': self.author_name,
            'categories': [c.to_dict() for c in self.categories],
            'tags': [t.to_dict() for t in self.tags],
        }


@event.listens_for(ContentItem.categories, 'append')
@event.listens_for(ContentItem.categories, 'remove')
@event.listens_for(ContentItem.tags, 'append')
@event.listens_for(ContentItem.tags, 'remove')
def _touch_on_term_change(item, term, initiator):
    # Association rows carry no timestamp; the item records the change
    item.updated_at = datetime.utcnow()
