"""
Shared fixtures for StorySlip tests.

Every test gets a fresh app with an in-memory SQLite database and one
website with an owner, an editor and a viewer.
"""
from datetime import datetime

import pytest

from storyslip import create_app
from storyslip.extensions import db
from storyslip.models import Category, ContentItem, Tag, Website, WebsiteMember


OWNER_ID = 'user-owner'
EDITOR_ID = 'user-editor'
VIEWER_ID = 'user-viewer'
OUTSIDER_ID = 'user-outsider'


@pytest.fixture
def app():
    """Create test application."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def website(app):
    """A website with an owner, an editor and a viewer."""
    site = Website(name='Test Blog', domain='blog.example.com', api_key='ss_testkey')
    db.session.add(site)
    db.session.flush()
    for user_id, role in ((OWNER_ID, 'owner'), (EDITOR_ID, 'editor'), (VIEWER_ID, 'viewer')):
        db.session.add(WebsiteMember(website_id=site.id, user_id=user_id, role=role))
    db.session.commit()
    return site


@pytest.fixture
def other_website(app):
    site = Website(name='Other Blog', domain='other.example.com', api_key='ss_otherkey')
    db.session.add(site)
    db.session.commit()
    return site


def _headers(user_id):
    return {'X-User-ID': user_id, 'Content-Type': 'application/json'}


@pytest.fixture
def owner_headers():
    return _headers(OWNER_ID)


@pytest.fixture
def editor_headers():
    return _headers(EDITOR_ID)


@pytest.fixture
def viewer_headers():
    return _headers(VIEWER_ID)


@pytest.fixture
def outsider_headers():
    return _headers(OUTSIDER_ID)


@pytest.fixture
def make_content(website):
    """Factory for content items on the test website."""
    def _make(title, status='published', published_at=None, categories=(), tags=(), **fields):
        item = ContentItem(
            website_id=fields.pop('website_id', website.id),
            title=title,
            status=status,
            published_at=published_at or (datetime(2024, 1, 1) if status == 'published' else None),
            **fields,
        )
        item.categories = list(categories)
        item.tags = list(tags)
        db.session.add(item)
        db.session.commit()
        return item
    return _make


@pytest.fixture
def make_term(website):
    """Factory for categories and tags."""
    def _make(kind, name, slug=None):
        model = Category if kind == 'category' else Tag
        term = model(website_id=website.id, name=name, slug=slug or name.lower().replace(' ', '-'))
        db.session.add(term)
        db.session.commit()
        return term
    return _make
