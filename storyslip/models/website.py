"""
Website (tenant) and team membership models.
"""
import uuid
import secrets
from datetime import datetime
from enum import Enum
from ..extensions import db


class MemberRole(str, Enum):
    """Roles a user can hold on a website."""
    OWNER = 'owner'
    ADMIN = 'admin'
    EDITOR = 'editor'
    AUTHOR = 'author'
    VIEWER = 'viewer'


def generate_api_key() -> str:
    """Public key used by legacy embeds to list content."""
    return f'ss_{secrets.token_hex(16)}'


class Website(db.Model):
    """
    Tenant website. Widgets, content and team members are scoped to it.
    """
    __tablename__ = 'websites'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    domain = db.Column(db.String(255), nullable=False)

    # Public key for /widget/{apiKey}/content
    api_key = db.Column(db.String(64), unique=True, nullable=False, default=generate_api_key)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    members = db.relationship('WebsiteMember', backref='website', lazy='dynamic',
                              cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Website {self.domain}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'domain': self.domain,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def get_by_api_key(cls, api_key: str) -> 'Website':
        """Get an active website by its public API key."""
        return cls.query.filter_by(api_key=api_key, is_active=True).first()


class WebsiteMember(db.Model):
    """
    A user's role on a website.
    """
    __tablename__ = 'website_members'

    id = db.Column(db.Integer, primary_key=True)
    website_id = db.Column(db.String(36), db.ForeignKey('websites.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default=MemberRole.VIEWER.value)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('website_id', 'user_id', name='unique_website_member'),
    )

    def __repr__(self):
        return f'<WebsiteMember {self.user_id} {self.role} on {self.website_id}>'

    def to_dict(self):
        return {
            'website_id': self.website_id,
            'user_id': self.user_id,
            'role': self.role,
        }

    @classmethod
    def get_membership(cls, user_id: str, website_id: str) -> 'WebsiteMember':
        return cls.query.filter_by(user_id=user_id, website_id=website_id).first()
